"""YouTube video/live analyzer.

The video is split into fixed windows; each window is described by the LLM
(or by a timing-based fallback), then aggregated into insights, program
structure phases, overall metrics and recommendations.
"""
from __future__ import annotations

import asyncio
import math
import re
from typing import Dict, List, Optional, Set, Tuple

import httpx
from pydantic import BaseModel, Field, ValidationError

from iaboard.llm.adapter import BaseLLMAdapter, get_llm_adapter
from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session
from iaboard.settings import get_settings
from iaboard.utils.json_parser import extract_json
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_DURATION = 1800
YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3/videos"
OEMBED_URL = "https://www.youtube.com/oembed"

_VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/live/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/embed/([^&\n?#]+)"),
    re.compile(r"youtube\.com/v/([^&\n?#]+)"),
]
_ISO_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

_PHASE_IMPROVEMENTS = {
    "opening": ["Reduce setup time", "Add stronger visual hook", "Improve initial energy"],
    "hook": ["Create more curiosity", "Add specific benefit promises", "Use pattern interrupt"],
    "content": ["Add more examples", "Improve pacing", "Include visual demonstrations"],
    "interaction": ["Encourage more participation", "Ask specific questions", "Create polls/surveys"],
    "closing": ["Stronger call-to-action", "Clear next steps", "Create urgency"],
}


class VideoInfo(BaseModel):
    id: str
    title: str
    duration: int = 0
    description: str = ""
    thumbnail: Optional[str] = None
    is_live: bool = False
    channel_title: Optional[str] = None
    published_at: Optional[str] = None


class Emotions(BaseModel):
    dominant: str
    confidence: float = 0.7
    secondary: Optional[str] = None


class TechnicalQuality(BaseModel):
    audioQuality: float = 0.7
    videoQuality: float = 0.7
    stability: float = 0.7


class Segment(BaseModel):
    start_time: float
    end_time: float
    visual_description: str = Field(alias="visualDescription")
    audio_analysis: str = Field(alias="audioAnalysis")
    emotions: Emotions
    key_topics: List[str] = Field(alias="keyTopics")
    engagement_score: float = Field(alias="engagementScore", ge=0.0, le=1.0)
    technical_quality: TechnicalQuality = Field(default_factory=TechnicalQuality, alias="technicalQuality")

    model_config = {"populate_by_name": True}


class Insight(BaseModel):
    insight_type: str
    timestamp: float
    description: str
    confidence: float
    actionable: str
    category: str


class StructurePhase(BaseModel):
    phase: str
    start_time: float
    end_time: float
    effectiveness: float
    key_elements: List[str]
    improvements: List[str]


class AnalysisReport(BaseModel):
    video: VideoInfo
    segments: List[Segment]
    insights: List[Insight]
    structure: List[StructurePhase]
    overall_metrics: Dict[str, float]
    recommendations: Dict[str, List[str]]


def extract_video_id(url: str) -> str:
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return url


def parse_iso8601_duration(value: str) -> int:
    match = _ISO_DURATION_RE.search(value or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_time(seconds: float) -> str:
    seconds = int(seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


def time_context(current: float, total: float) -> str:
    percentage = current / total * 100
    if percentage < 5:
        return "opening/introduction"
    if percentage < 15:
        return "hook/engagement building"
    if percentage < 30:
        return "content establishment"
    if percentage < 60:
        return "main content delivery"
    if percentage < 80:
        return "interaction/Q&A phase"
    if percentage < 95:
        return "conclusion/summary"
    return "closing/call-to-action"


def segment_windows(duration: int) -> List[Tuple[int, int]]:
    """Splits the video into windows, widening them to stay under the segment cap."""
    settings = get_settings()
    total = duration or DEFAULT_DURATION
    window = max(settings.youtube_segment_seconds, math.ceil(total / settings.youtube_max_segments))
    return [(start, min(start + window, total)) for start in range(0, total, window)]


def fallback_segment(video: VideoInfo, start: float, end: float, context: str) -> Segment:
    if context == "opening/introduction":
        visual = (
            f"{'Live stream' if video.is_live else 'Video'} opening with presenter greeting audience, "
            "checking technical setup"
        )
        audio = "Clear, welcoming tone with moderate energy, possible background music fade-in"
        emotion, engagement = "welcoming", 0.7
        topics = ["welcome", "introduction", "agenda overview"]
    elif context == "hook/engagement building":
        visual = "Presenter establishing credibility, showing enthusiasm, using gestures to emphasize points"
        audio = "Rising energy, confident tone, strategic pauses for emphasis"
        emotion, engagement = "confident", 0.8
        topics = ["value proposition", "audience benefits", "credibility building"]
    elif context == "main content delivery":
        visual = "Core content presentation with possible screen sharing, demonstrations, or visual aids"
        audio = "Steady, informative delivery with varied pace to maintain interest"
        emotion, engagement = "focused", 0.65
        topics = ["main topic", "expert insights", "practical examples"]
    elif context == "interaction/Q&A phase":
        visual = "Active interaction with audience, reading comments/questions, responsive body language"
        audio = "Conversational tone, responsive to audience input, energetic exchanges"
        emotion, engagement = "engaging", 0.75
        topics = ["audience questions", "community interaction", "personalized advice"]
    else:
        visual = "Standard presentation with professional demeanor and clear visual communication"
        audio = "Professional delivery with appropriate energy for content type"
        emotion, engagement = "professional", 0.6
        topics = ["general content", "information sharing"]

    return Segment(
        start_time=start,
        end_time=end,
        visual_description=visual,
        audio_analysis=audio,
        emotions=Emotions(dominant=emotion, confidence=0.7),
        key_topics=topics,
        engagement_score=engagement,
        technical_quality=TechnicalQuality(audioQuality=0.8, videoQuality=0.8, stability=0.85),
    )


def _segment_prompt(video: VideoInfo, start: float, end: float, context: str) -> str:
    kind = "live stream" if video.is_live else "video"
    return f"""Analyze a {int(end - start)}-second segment of a YouTube {kind} titled "{video.title}".

Time: {format_time(start)} - {format_time(end)} ({context})

Based on the title, timing, and context, provide detailed analysis for:

1. VISUAL DESCRIPTION: What visual elements, body language, and production aspects are likely present
2. AUDIO ANALYSIS: Tone, pace, energy level, music/effects usage
3. DOMINANT EMOTION: Primary emotion conveyed (confidence: 0-1)
4. KEY TOPICS: Main discussion points or content themes (3-5 topics)
5. ENGAGEMENT SCORE: Viewer retention likelihood (0-1)
6. TECHNICAL QUALITY: Audio quality, video stability, lighting (each 0-1)

Respond in JSON format:
{{
  "visualDescription": "detailed description",
  "audioAnalysis": "audio characteristics",
  "emotions": {{"dominant": "emotion name", "confidence": 0.8, "secondary": "optional secondary emotion"}},
  "keyTopics": ["topic1", "topic2", "topic3"],
  "engagementScore": 0.7,
  "technicalQuality": {{"audioQuality": 0.8, "videoQuality": 0.9, "stability": 0.85}}
}}"""


def _mean(values: List[float], default: float = 0.0) -> float:
    return sum(values) / len(values) if values else default


def build_insights(segments: List[Segment]) -> List[Insight]:
    insights: List[Insight] = []

    hook_segments = [s for s in segments if s.start_time < 30]
    if hook_segments:
        score = _mean([s.engagement_score for s in hook_segments])
        strength = "strongly" if score > 0.7 else "moderately" if score > 0.5 else "weakly"
        insights.append(
            Insight(
                insight_type="hook",
                timestamp=15,
                description=(
                    f"Hook {strength} captures attention with "
                    f"{'compelling' if score > 0.7 else 'standard'} opening"
                ),
                confidence=score,
                actionable=(
                    "Strengthen opening with more compelling hook, question, or visual"
                    if score < 0.7
                    else "Maintain strong opening approach"
                ),
                category="content",
            )
        )

    for segment in segments:
        if segment.engagement_score > 0.8:
            insights.append(
                Insight(
                    insight_type="retention",
                    timestamp=segment.start_time + 5,
                    description=f"High engagement moment: Strong {', '.join(segment.key_topics)} delivery",
                    confidence=segment.engagement_score,
                    actionable="Replicate this engagement pattern in similar content",
                    category="content",
                )
            )

    avg_audio = _mean([s.technical_quality.audioQuality for s in segments], 0.7)
    if avg_audio < 0.7:
        insights.append(
            Insight(
                insight_type="production",
                timestamp=0,
                description="Audio quality could be improved for better viewer experience",
                confidence=1 - avg_audio,
                actionable="Invest in better microphone or audio processing software",
                category="production",
            )
        )
    return insights


def phase_improvements(phase: str, effectiveness: float, key_elements: List[str]) -> List[str]:
    improvements: List[str] = []
    if effectiveness < 0.6:
        improvements.extend(_PHASE_IMPROVEMENTS.get(phase, []))
    if len(key_elements) < 3:
        improvements.extend(["Expand content variety", "Add more discussion points"])
    return improvements


def build_structure(duration: int, segments: List[Segment]) -> List[StructurePhase]:
    total = duration or DEFAULT_DURATION
    bounds = [
        ("opening", 0, min(120, total * 0.1)),
        ("hook", min(120, total * 0.1), min(300, total * 0.2)),
        ("content", min(300, total * 0.2), total * 0.7),
        ("interaction", total * 0.7, total * 0.9),
        ("closing", total * 0.9, total),
    ]
    structure: List[StructurePhase] = []
    for phase, start, end in bounds:
        inside = [s for s in segments if s.start_time >= start and s.end_time <= end]
        if not inside:
            continue
        effectiveness = _mean([s.engagement_score for s in inside])
        seen: Set[str] = set()
        elements: List[str] = []
        for segment in inside:
            for topic in segment.key_topics:
                if topic not in seen:
                    seen.add(topic)
                    elements.append(topic)
        elements = elements[:5]
        structure.append(
            StructurePhase(
                phase=phase,
                start_time=start,
                end_time=end,
                effectiveness=effectiveness,
                key_elements=elements,
                improvements=phase_improvements(phase, effectiveness, elements),
            )
        )
    return structure


def overall_metrics(
    segments: List[Segment], insights: List[Insight], structure: List[StructurePhase]
) -> Dict[str, float]:
    avg_engagement = _mean([s.engagement_score for s in segments])
    production = _mean(
        [
            (s.technical_quality.audioQuality + s.technical_quality.videoQuality + s.technical_quality.stability) / 3
            for s in segments
        ]
    )
    cta = [i.confidence for i in insights if i.insight_type == "cta" or i.category == "monetization"]
    return {
        "retentionPotential": min(avg_engagement * 1.2, 1.0),
        "engagementPotential": avg_engagement,
        "monetizationReadiness": _mean(cta, 0.3),
        "productionQuality": production,
        "contentValue": _mean([p.effectiveness for p in structure]),
    }


def recommendations(
    video: VideoInfo, structure: List[StructurePhase], metrics: Dict[str, float]
) -> Dict[str, List[str]]:
    immediate: List[str] = []
    short_term: List[str] = []
    long_term: List[str] = [
        "Develop signature content format and style",
        "Build systematic content creation workflow",
        "Create multi-platform content distribution strategy",
    ]

    if metrics["productionQuality"] < 0.7:
        immediate.append("Upgrade audio equipment or recording environment")
    weak = [p.phase for p in structure if p.effectiveness < 0.6]
    if weak:
        immediate.append(f"Improve {', '.join(weak)} sections for better flow")

    if metrics["engagementPotential"] < 0.7:
        short_term.extend(["Develop stronger storytelling framework", "Create more interactive elements"])
    if metrics["monetizationReadiness"] < 0.5:
        short_term.append("Integrate natural product mentions and CTAs")

    if video.is_live:
        long_term.append("Develop hybrid live/recorded content strategy")

    return {"immediate": immediate, "shortTerm": short_term, "longTerm": long_term}


class YouTubeAnalyzer:
    def __init__(
        self,
        adapter: Optional[BaseLLMAdapter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._adapter = adapter
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=15.0, transport=self._transport)

    async def get_video_info(self, video_id: str) -> VideoInfo:
        api_key = get_settings().google_api_key
        if api_key:
            try:
                async with self._client() as client:
                    resp = await client.get(
                        YOUTUBE_API_URL,
                        params={
                            "id": video_id,
                            "key": api_key,
                            "part": "snippet,contentDetails,liveStreamingDetails",
                        },
                    )
                resp.raise_for_status()
                items = resp.json().get("items") or []
                if items:
                    video = items[0]
                    snippet = video.get("snippet", {})
                    thumbs = snippet.get("thumbnails", {})
                    return VideoInfo(
                        id=video_id,
                        title=snippet.get("title") or video_id,
                        duration=parse_iso8601_duration(video.get("contentDetails", {}).get("duration", "")),
                        description=snippet.get("description") or "",
                        thumbnail=(thumbs.get("high") or thumbs.get("default") or {}).get("url"),
                        is_live="liveStreamingDetails" in video,
                        channel_title=snippet.get("channelTitle"),
                        published_at=snippet.get("publishedAt"),
                    )
            except (httpx.HTTPError, ValueError) as exc:
                LOGGER.info("YouTube Data API unavailable, using oEmbed: %s", exc)

        try:
            async with self._client() as client:
                resp = await client.get(
                    OEMBED_URL,
                    params={"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"},
                )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RuntimeError("Could not fetch video information") from exc

        title = data.get("title") or video_id
        return VideoInfo(
            id=video_id,
            title=title,
            thumbnail=data.get("thumbnail_url"),
            is_live="live" in title.lower(),
            channel_title=data.get("author_name"),
        )

    async def analyze_segment(self, video: VideoInfo, start: float, end: float) -> Segment:
        context = time_context(start, video.duration or DEFAULT_DURATION)
        try:
            llm = self._adapter or get_llm_adapter()
            raw = await llm.acomplete(_segment_prompt(video, start, end, context), json_mode=True)
            data = extract_json(raw)
            if data:
                return Segment(start_time=start, end_time=end, **data)
        except ValidationError as exc:
            LOGGER.debug("Segment %s-%s returned malformed JSON: %s", start, end, exc)
        except Exception as exc:
            LOGGER.warning("Segment %s-%s analysis failed: %s", start, end, exc)
        return fallback_segment(video, start, end, context)

    async def analyze(self, url: str) -> AnalysisReport:
        video = await self.get_video_info(extract_video_id(url))
        LOGGER.info("Analyzing %s (%ss)", video.title, video.duration or DEFAULT_DURATION)

        segments = list(
            await asyncio.gather(
                *(self.analyze_segment(video, start, end) for start, end in segment_windows(video.duration))
            )
        )
        insights = build_insights(segments)
        structure = build_structure(video.duration, segments)
        metrics = overall_metrics(segments, insights, structure)
        return AnalysisReport(
            video=video,
            segments=segments,
            insights=insights,
            structure=structure,
            overall_metrics=metrics,
            recommendations=recommendations(video, structure, metrics),
        )

    async def run(self, analysis_id: int, url: str) -> None:
        """Analyzes ``url`` and persists the report under ``analysis_id``."""
        try:
            report = await self.analyze(url)
        except Exception as exc:
            LOGGER.exception("Analysis %s failed", analysis_id)
            async with get_session() as session:
                await db_utils.update_analysis(
                    session, analysis_id, status="failed", meta={"error": str(exc)[:300]}
                )
            return

        async with get_session() as session:
            await db_utils.save_analysis_parts(
                session,
                analysis_id,
                segments=[s.model_dump(exclude_none=True) for s in report.segments],
                insights=[i.model_dump() for i in report.insights],
                structure=[p.model_dump() for p in report.structure],
            )
            await db_utils.complete_analysis(
                session,
                analysis_id,
                title=report.video.title,
                duration=report.video.duration,
                metadata={
                    "thumbnail": report.video.thumbnail,
                    "channelTitle": report.video.channel_title,
                    "isLive": report.video.is_live,
                    "overallMetrics": report.overall_metrics,
                    "recommendations": report.recommendations,
                },
            )
        LOGGER.info("Analysis %s completed with %d segments", analysis_id, len(report.segments))


_tasks: Set[asyncio.Task] = set()


def start_analysis(analysis_id: int, url: str, analyzer: Optional[YouTubeAnalyzer] = None) -> asyncio.Task:
    task = asyncio.create_task((analyzer or YouTubeAnalyzer()).run(analysis_id, url))
    _tasks.add(task)
    task.add_done_callback(_tasks.discard)
    return task
