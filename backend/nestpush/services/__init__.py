"""Services for token management, audience resolution and push delivery."""
from .token_store import TokenStore, token_store
from .preference_store import PreferenceStore, preference_store
from .audience import AudienceResolver, audience_resolver
from .history import HistoryStore, history_store
from .push_gateway import PushGateway, FcmGateway, push_gateway
from .dispatcher import Dispatcher
from .notifier import DispatcherNotifier, dispatcher_notifier
from .records import RecordService
from .scheduler import SchedulerService, scheduler_service

__all__ = [
    "TokenStore",
    "token_store",
    "PreferenceStore",
    "preference_store",
    "AudienceResolver",
    "audience_resolver",
    "HistoryStore",
    "history_store",
    "PushGateway",
    "FcmGateway",
    "push_gateway",
    "Dispatcher",
    "DispatcherNotifier",
    "dispatcher_notifier",
    "RecordService",
    "SchedulerService",
    "scheduler_service",
]
