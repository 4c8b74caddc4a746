from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, StrictInt


# --- Domain ---

class TranscriptSegment(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    start_time: float
    end_time: float


class RecognitionJob(BaseModel):
    task_id: str


# --- Bcut wire responses: every reply is wrapped as {"data": {...}} ---

class UploadSlotsData(BaseModel):
    in_boss_key: str
    resource_id: str
    upload_id: str
    per_size: PositiveInt
    upload_urls: list[str] = Field(min_length=1)


class UploadSlotsResponse(BaseModel):
    data: UploadSlotsData


class CommitData(BaseModel):
    download_url: str = Field(min_length=1)


class CommitResponse(BaseModel):
    data: CommitData


class TaskData(BaseModel):
    task_id: str = Field(min_length=1)


class TaskResponse(BaseModel):
    data: TaskData


class TaskResultData(BaseModel):
    state: StrictInt
    # a JSON document encoded as a string; checked once the task is done
    result: Any = None


class TaskResultResponse(BaseModel):
    data: TaskResultData


# --- AI summary / chat ---

class AIConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    api_url: str = ""
    model: str = ""
    custom_prompt: str = ""


class SummarizeRequest(BaseModel):
    text: str = ""
    prompt: str = ""
    segments: list[TranscriptSegment] = []


class SummaryResult(BaseModel):
    summary: str
    markdown: str
    points: list[str]
    success: bool


class ChatRequest(BaseModel):
    history: list[dict[str, str]] = []
    context: str = ""
    message: str


class ChatResponse(BaseModel):
    reply: str


# --- OpenAI-compatible completion body (fields read back only) ---

class ChatMessage(BaseModel):
    content: str


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatError(BaseModel):
    message: str = ""


class ChatCompletionResponse(BaseModel):
    choices: list[ChatChoice] = []
    error: Optional[ChatError] = None


# --- Gateway ---

class TranscribeRequest(BaseModel):
    audio_path: str
    use_cache: bool = True


class TranscribeResponse(BaseModel):
    audio_path: str
    segments: list[TranscriptSegment]
    segment_count: int
