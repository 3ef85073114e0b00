"""
Kubeplate renders parameterized Kubernetes manifests and applies them to a cluster. The kind of every resource is
resolved against the cluster's discovery endpoints at runtime, so resources of any kind can be applied, including
custom resources.
"""

from kubeplate.pipeline import ApplyOptions, apply, render
from kubeplate.reconciler import OutcomeStatus, ReconciliationOutcome

__version__ = "0.1.0"

__all__ = [
    "ApplyOptions",
    "OutcomeStatus",
    "ReconciliationOutcome",
    "apply",
    "render",
]
