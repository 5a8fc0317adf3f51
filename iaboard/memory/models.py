from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, JSON, SQLModel


def short_id() -> str:
    return uuid4().hex[:12]


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: str = Field(default_factory=short_id, primary_key=True, index=True)
    title: str
    description: str = Field(default="")
    product_type: Optional[str] = Field(default=None)
    status: str = Field(default="idle")  # idle, processing, completed, error
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=datetime.utcnow)
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
        )
    )


class AIGeneration(SQLModel, table=True):
    __tablename__ = "ai_generations"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    content_type: str  # text, image, video, audio
    prompt: str
    provider: Optional[str] = None
    success: bool = Field(default=True)
    url: Optional[str] = None
    error: Optional[str] = None
    data: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=datetime.utcnow)
    )


class WorkflowRun(SQLModel, table=True):
    __tablename__ = "workflow_runs"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    product_type: str
    status: str = Field(default="idle")  # idle, processing, completed, error, stopped
    current_step: int = Field(default=0)
    total_steps: int = Field(default=10)
    context: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))
    results: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))
    download_file: Optional[str] = None
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=datetime.utcnow)
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
        )
    )


class WorkflowEvent(SQLModel, table=True):
    __tablename__ = "workflow_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    run_id: UUID = Field(foreign_key="workflow_runs.id", index=True)
    step_id: Optional[int] = None
    level: str = Field(default="info")
    message: str
    data: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))
    timestamp: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=datetime.utcnow)
    )


class CanvasNode(SQLModel, table=True):
    __tablename__ = "canvas_nodes"

    id: str = Field(default_factory=short_id, primary_key=True, index=True)
    module_id: str
    title: str
    status: str = Field(default="idle")
    x: float = Field(default=0.0)
    y: float = Field(default=0.0)
    data: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=datetime.utcnow)
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
        )
    )


class YouTubeAnalysis(SQLModel, table=True):
    __tablename__ = "youtube_analyses"

    id: Optional[int] = Field(default=None, primary_key=True)
    video_id: str = Field(index=True)
    url: str
    title: str
    duration: Optional[int] = None  # seconds
    analysis_type: str = Field(default="video")  # live, video, short
    status: str = Field(default="pending")  # pending, processing, completed, failed
    meta: Dict[str, Any] = Field(sa_column=Column("metadata", JSON, default=dict, nullable=False))
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), default=datetime.utcnow)
    )
    completed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class TimeSegment(SQLModel, table=True):
    __tablename__ = "time_segments"

    id: Optional[int] = Field(default=None, primary_key=True)
    analysis_id: int = Field(foreign_key="youtube_analyses.id", index=True)
    start_time: float
    end_time: float
    transcript: Optional[str] = None
    visual_description: Optional[str] = None
    audio_analysis: Optional[str] = None
    emotions: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))
    key_topics: List[str] = Field(sa_column=Column(JSON, default=list, nullable=False))
    engagement_score: float = Field(default=0.5)
    technical_quality: Dict[str, Any] = Field(sa_column=Column(JSON, default=dict, nullable=False))


class ContentInsight(SQLModel, table=True):
    __tablename__ = "content_insights"

    id: Optional[int] = Field(default=None, primary_key=True)
    analysis_id: int = Field(foreign_key="youtube_analyses.id", index=True)
    insight_type: str  # hook, retention, cta, storytelling
    timestamp: float
    description: str
    confidence: float
    actionable: Optional[str] = None
    category: Optional[str] = None  # production, content, engagement, monetization


class ProgramStructure(SQLModel, table=True):
    __tablename__ = "program_structure"

    id: Optional[int] = Field(default=None, primary_key=True)
    analysis_id: int = Field(foreign_key="youtube_analyses.id", index=True)
    phase: str  # opening, hook, content, interaction, closing
    start_time: float
    end_time: float
    effectiveness: float = Field(default=0.5)
    key_elements: List[str] = Field(sa_column=Column(JSON, default=list, nullable=False))
    improvements: List[str] = Field(sa_column=Column(JSON, default=list, nullable=False))
