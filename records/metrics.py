"""Application metrics exported alongside django-prometheus' own on /metrics."""
from django.db import transaction
from prometheus_client import Counter

REFERRAL_TRANSITIONS = Counter(
    'referral_transitions_total',
    'Referral status transitions committed, by action',
    ['action'],
)


def count_transition_on_commit(action: str, amount: int = 1) -> None:
    transaction.on_commit(lambda: REFERRAL_TRANSITIONS.labels(action=action).inc(amount))
