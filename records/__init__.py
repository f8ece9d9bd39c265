"""Records application for the health office backend.

Models, access control, referral lifecycle and consultation services,
plus the DRF views and routes that expose them.
"""
