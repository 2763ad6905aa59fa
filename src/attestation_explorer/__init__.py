"""
Attestation explorer package.

Discovers, correlates, caches and paginates trader data and risk
attestations recorded on an EVM ledger.
"""

from .config import ExplorerConfig, FetchConfig
from .correlator import correlate_events
from .errors import DecodeError, ExplorerError, NoFetchSourceError, PersistenceError, TransportError
from .explorer import AttestationExplorer
from .models import CorrelatedRecord, DataEvent, PageView, Proof, RiskEvent
from .orchestrator import FetchOrchestrator
from .pagination import ProofPaginationController
from .proof_cache import ProofCache

__all__ = [
    "AttestationExplorer",
    "CorrelatedRecord",
    "DataEvent",
    "DecodeError",
    "ExplorerConfig",
    "ExplorerError",
    "FetchConfig",
    "FetchOrchestrator",
    "NoFetchSourceError",
    "PageView",
    "PersistenceError",
    "Proof",
    "ProofCache",
    "ProofPaginationController",
    "RiskEvent",
    "TransportError",
    "correlate_events",
]
__version__ = "0.1.0"
