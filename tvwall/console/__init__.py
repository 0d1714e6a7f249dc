"""Management console back end: display registry, store client and sync poller."""

from tvwall.console.client import StoreClient, TransportFailure, delete_many, upload_many
from tvwall.console.poller import PollSchedule, SyncPoller, start_sync_scheduler
from tvwall.console.registry import DisplayEndpoint, EndpointStatus, TelevisionRegistry

__all__ = [
    "DisplayEndpoint",
    "EndpointStatus",
    "PollSchedule",
    "StoreClient",
    "SyncPoller",
    "TelevisionRegistry",
    "TransportFailure",
    "delete_many",
    "start_sync_scheduler",
    "upload_many",
]
