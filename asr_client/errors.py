"""Error taxonomy for the ASR client.

Single-shot failures (upload negotiation, part PUT, commit, task creation)
abort the whole run. Only the poll loop absorbs transient failures.
"""

from __future__ import annotations


class ASRError(RuntimeError):
    code = "asr_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FileReadError(ASRError):
    code = "file_read"


class EncodingError(ASRError):
    code = "encoding"


class NetworkError(ASRError):
    code = "network"


class ResponseFormatError(ASRError):
    code = "response_format"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class PartUploadError(ASRError):
    code = "part_upload"

    def __init__(self, index: int, message: str):
        super().__init__(f"part {index}: {message}")
        self.index = index


class CommitError(ResponseFormatError):
    code = "commit"


class TaskCreationError(ResponseFormatError):
    code = "task_creation"


class RemoteTaskFailedError(ASRError):
    code = "remote_task_failed"

    def __init__(self, state: int):
        super().__init__(f"remote task failed with state {state}")
        self.state = state


class EmptyResultError(ASRError):
    code = "empty_result"


class ResultParseError(ASRError):
    code = "result_parse"


class PollTimeoutError(ASRError):
    code = "poll_timeout"


class Canceled(ASRError):
    code = "canceled"


class PhaseError(ASRError):
    """Wraps the failure of one pipeline phase; the cause is chained."""

    phase = "unknown"

    def __init__(self, cause: BaseException):
        super().__init__(f"{self.phase} failed: {cause}")
        self.cause = cause


class UploadFailed(PhaseError):
    code = "upload_failed"
    phase = "upload"


class TaskCreationFailed(PhaseError):
    code = "task_creation_failed"
    phase = "task creation"


class QueryFailed(PhaseError):
    code = "query_failed"
    phase = "query"
