"""Pydantic schemas for API requests and responses."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from iaboard.integrations.typeform import FEEDBACK_FORM, FormField

NodeStatus = Literal["idle", "processing", "completed", "error"]


class GenerateRequest(BaseModel):
    """Universal generation request."""
    type: str
    prompt: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ExecuteRequest(BaseModel):
    prompt: str = ""
    module: str = "ia-total"
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ModuleExecuteRequest(BaseModel):
    module: str = ""
    prompt: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)


class SupremaExecuteRequest(BaseModel):
    moduleId: str
    projectData: Dict[str, Any] = Field(default_factory=dict)
    prompt: Optional[str] = None
    learningMode: bool = False


class ProcessStepRequest(BaseModel):
    stepId: int
    productType: str = "produto digital"
    context: Dict[str, Any] = Field(default_factory=dict)


class ChatMessage(BaseModel):
    role: str = "user"
    content: str


class LLMGenerateRequest(BaseModel):
    """Chat-style request used by the dashboard."""
    model: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    prompt: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class TicketRequest(BaseModel):
    tipo: str
    titulo: str = Field(min_length=1)
    descricao: str = ""


class WorkflowStartRequest(BaseModel):
    productType: str = Field(min_length=1)
    context: Dict[str, Any] = Field(default_factory=dict)


class CanvasNodeCreate(BaseModel):
    moduleId: str
    title: str
    status: NodeStatus = "idle"
    x: float = 0.0
    y: float = 0.0
    data: Dict[str, Any] = Field(default_factory=dict)


class CanvasNodeUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[NodeStatus] = None
    x: Optional[float] = None
    y: Optional[float] = None
    data: Optional[Dict[str, Any]] = None


class ProjectCreate(BaseModel):
    """Project creation request."""
    title: str = Field(min_length=1)
    description: str = ""
    productType: Optional[str] = None


class YouTubeAnalyzeRequest(BaseModel):
    url: str = Field(min_length=1)


class TypeformCreate(BaseModel):
    title: str = Field(min_length=1)
    fields: List[FormField] = Field(default_factory=lambda: list(FEEDBACK_FORM))


class MailchimpSubscribe(BaseModel):
    email: str
    listId: str
    firstName: str = ""
    lastName: str = ""
    tags: List[str] = Field(default_factory=list)


class MixpanelTrack(BaseModel):
    event: str
    properties: Dict[str, Any] = Field(default_factory=dict)
    distinctId: Optional[str] = None


class NotionPageCreate(BaseModel):
    title: str
    content: str = ""
    databaseId: Optional[str] = None


class WebhookTrigger(BaseModel):
    event_type: str = Field(min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


class SpeechRequest(BaseModel):
    text: str = Field(min_length=1)
    voiceId: Optional[str] = None


class ImageParameters(BaseModel):
    negativePrompt: Optional[str] = None
    width: int = Field(default=1024, ge=256, le=2048)
    height: int = Field(default=1024, ge=256, le=2048)


class ImageGenerateRequest(BaseModel):
    prompt: str = Field(min_length=1)
    parameters: ImageParameters = Field(default_factory=ImageParameters)
