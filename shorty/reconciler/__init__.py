from shorty.reconciler.reconciler import Reconciler
from shorty.reconciler.scheduler import ReconcileScheduler


__all__ = [
    'Reconciler',
    'ReconcileScheduler',
]
