"""Tournament lifecycle: cycle controller, reconciliation, picker, timeout, pause."""

from .controller import CycleController, CycleOutcome
from .entries import TrackLocks, claim_entry
from .pause import PauseControl
from .picker import PickerWorkflow, TableCheck
from .reconcile import ReconcileReport, Reconciler
from .timeout import TimeoutAction, TimeoutEscalator

__all__ = [
    "CycleController",
    "CycleOutcome",
    "PauseControl",
    "PickerWorkflow",
    "ReconcileReport",
    "Reconciler",
    "TableCheck",
    "TimeoutAction",
    "TimeoutEscalator",
    "TrackLocks",
    "claim_entry",
]
