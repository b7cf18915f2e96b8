from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .core.domain_objects import GateState, utc_now


class ApiModel(BaseModel):
    """Base for HTTP payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileHashesRequest(ApiModel):
    file_hashes: List[str] = Field(default_factory=list, description="Fingerprints to act on")


class FileInfo(ApiModel):
    """One file of the watched location(s) as shown by /api/files."""

    name: str
    size: int
    type: str = "file"
    state: str = Field(..., description="'processed' or 'pending'")
    url: Optional[str] = None
    source: str
    file_hash: str


class FilesResponse(ApiModel):
    files: List[FileInfo]
    total_files: int
    hdfs_disconnected: bool
    mode: str
    enabled: bool
    status: str
    consumer_status: str
    timestamp: datetime = Field(default_factory=utc_now)


class StatusResponse(ApiModel):
    mode: str
    is_local_mode: bool
    hdfs_disconnected: bool
    total_files: int
    processed_files_count: int
    processed_files_hashes: List[str]
    enabled: bool
    status: str
    consumer_status: str
    last_poll_at: Optional[datetime] = None
    timestamp: datetime = Field(default_factory=utc_now)


class LegacyStatusResponse(ApiModel):
    processed_files_count: int
    status: str = "success"


class UploadResponse(ApiModel):
    status: str = "success"
    filename: str
    url: str
    notified: bool
    timestamp: datetime = Field(default_factory=utc_now)


class ReprocessResponse(ApiModel):
    status: str = "success"
    reprocessed_count: int
    reprocessed_hashes: List[str]
    message: str
    timestamp: datetime = Field(default_factory=utc_now)


class ProcessNowResponse(ApiModel):
    status: str = "success"
    processed_count: int
    processed_hashes: List[str]
    failed_hashes: List[str]
    failures: Dict[str, str]
    message: str
    timestamp: datetime = Field(default_factory=utc_now)


class ClearResponse(ApiModel):
    status: str = "success"
    cleared_count: int
    message: str
    timestamp: datetime = Field(default_factory=utc_now)


class ReprocessAllResponse(ClearResponse):
    processing_enabled: bool = False


class ProcessingStateResponse(ApiModel):
    enabled: bool
    status: str
    consumer_status: str
    last_changed: datetime
    last_change_reason: str
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_gate_state(cls, state: GateState) -> "ProcessingStateResponse":
        return cls(
            enabled=state.enabled,
            status=state.status,
            consumer_status=state.consumer_status,
            last_changed=state.last_changed,
            last_change_reason=state.reason,
        )


class ProcessingChangeResponse(ProcessingStateResponse):
    success: bool = True
    message: str
    state_changed: bool
    immediately_processed_count: Optional[int] = None


class GateSummary(ApiModel):
    enabled: bool
    status: str
    consumer_status: str


class ProcessingToggleResponse(ApiModel):
    success: bool = True
    message: str
    action: str
    previous_state: GateSummary
    current_state: GateSummary
    immediately_processed_count: Optional[int] = None
    last_changed: datetime
    timestamp: datetime = Field(default_factory=utc_now)
