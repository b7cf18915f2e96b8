from functools import lru_cache
from typing import Any, Dict, Optional

from .config import Settings
from .core.events.event_bus import DomainEventBus
from .core.exceptions import ConfigurationError
from .core.processed_file_tracker import ProcessedFileStore, ProcessedFileTracker
from .core.processing_gate import ProcessingGate
from .notifications.base import NotificationSink
from .notifications.console import ConsoleSink
from .notifications.rabbitmq import RabbitMqSink
from .services.manual_ops import ManualOps
from .services.monitoring_publisher import MonitoringPublisher
from .services.poll_cycle import PollCycle
from .services.poller import Poller
from .services.upload_service import UploadService
from .storage.base import DirectoryLister, UrlBuilder
from .storage.local_storage import LocalFileStorage, LocalUrlBuilder
from .storage.webhdfs import (
    WebHdfsClient,
    WebHdfsDirectoryLister,
    WebHdfsUrlBuilder,
    resolve_webhdfs_base,
)

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_event_bus() -> DomainEventBus:
    if "event_bus" not in _singletons:
        _singletons["event_bus"] = DomainEventBus()
    return _singletons["event_bus"]


def get_tracker() -> ProcessedFileStore:
    if "tracker" not in _singletons:
        _singletons["tracker"] = ProcessedFileTracker()
    return _singletons["tracker"]


def get_gate() -> ProcessingGate:
    if "gate" not in _singletons:
        _singletons["gate"] = ProcessingGate()
    return _singletons["gate"]


def get_local_storage() -> Optional[LocalFileStorage]:
    """Local storage in pseudoop mode, None when watching HDFS."""
    settings = get_settings()
    if not settings.is_local_mode:
        return None
    if "local_storage" not in _singletons:
        _singletons["local_storage"] = LocalFileStorage(settings.local_storage_path)
    return _singletons["local_storage"]


def get_webhdfs_client() -> Optional[WebHdfsClient]:
    """
    WebHDFS client when not in pseudoop mode.

    Raises:
        ConfigurationError: If no namenode URI or user is configured.
    """
    settings = get_settings()
    if settings.is_local_mode:
        return None
    if "webhdfs_client" not in _singletons:
        if not settings.webhdfs_uri.strip() and not settings.hdfs_uri.strip():
            raise ConfigurationError(
                "Either webhdfs_uri or hdfs_uri must be set when not running in pseudoop mode"
            )
        _singletons["webhdfs_client"] = WebHdfsClient(
            base_uri=resolve_webhdfs_base(settings.webhdfs_uri, settings.hdfs_uri),
            user=settings.hdfs_user,
            timeout_seconds=settings.request_timeout_seconds,
        )
    return _singletons["webhdfs_client"]


def get_directory_lister() -> DirectoryLister:
    if "directory_lister" not in _singletons:
        local_storage = get_local_storage()
        if local_storage is not None:
            _singletons["directory_lister"] = local_storage
        else:
            _singletons["directory_lister"] = WebHdfsDirectoryLister(
                get_webhdfs_client(), get_settings().hdfs_path_list
            )
    return _singletons["directory_lister"]


def get_url_builder() -> UrlBuilder:
    if "url_builder" not in _singletons:
        settings = get_settings()
        if settings.is_local_mode:
            _singletons["url_builder"] = LocalUrlBuilder(settings.resolved_public_app_uri)
        else:
            _singletons["url_builder"] = WebHdfsUrlBuilder(get_webhdfs_client())
    return _singletons["url_builder"]


def get_notification_sink() -> NotificationSink:
    if "notification_sink" not in _singletons:
        settings = get_settings()
        if settings.uses_broker:
            _singletons["notification_sink"] = RabbitMqSink(
                url=settings.rabbitmq_url,
                exchange_name=settings.exchange_name,
                routing_key=settings.output_binding,
                auto_declare=settings.stream_auto_declare,
                connect_timeout=settings.broker_connect_timeout_seconds,
            )
        else:
            _singletons["notification_sink"] = ConsoleSink()
    return _singletons["notification_sink"]


def get_poll_cycle() -> PollCycle:
    if "poll_cycle" not in _singletons:
        settings = get_settings()
        _singletons["poll_cycle"] = PollCycle(
            lister=get_directory_lister(),
            url_builder=get_url_builder(),
            sink=get_notification_sink(),
            tracker=get_tracker(),
            gate=get_gate(),
            event_bus=get_event_bus(),
            batch_size=settings.dispatch_batch_size,
            batch_pause_ms=settings.dispatch_batch_pause_ms,
        )
    return _singletons["poll_cycle"]


def get_poller() -> Poller:
    if "poller" not in _singletons:
        _singletons["poller"] = Poller(
            poll_cycle=get_poll_cycle(),
            interval_seconds=get_settings().poll_interval_seconds,
        )
    return _singletons["poller"]


def get_manual_ops() -> ManualOps:
    if "manual_ops" not in _singletons:
        _singletons["manual_ops"] = ManualOps(
            tracker=get_tracker(),
            gate=get_gate(),
            poll_cycle=get_poll_cycle(),
            event_bus=get_event_bus(),
        )
    return _singletons["manual_ops"]


def get_upload_service() -> UploadService:
    if "upload_service" not in _singletons:
        _singletons["upload_service"] = UploadService(
            url_builder=get_url_builder(),
            sink=get_notification_sink(),
            local_storage=get_local_storage(),
            webhdfs_client=get_webhdfs_client(),
            upload_path=get_settings().hdfs_path_list[0],
        )
    return _singletons["upload_service"]


def get_monitoring_publisher() -> Optional[MonitoringPublisher]:
    settings = get_settings()
    if not settings.monitoring_rabbitmq_enabled:
        return None
    if "monitoring_publisher" not in _singletons:
        _singletons["monitoring_publisher"] = MonitoringPublisher(
            settings=settings,
            tracker=get_tracker(),
            gate=get_gate(),
            poll_cycle=get_poll_cycle(),
            event_bus=get_event_bus(),
        )
    return _singletons["monitoring_publisher"]


def reset_singletons() -> None:
    global _singletons
    _singletons.clear()
