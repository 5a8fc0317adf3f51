import asyncio
import json
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from iaboard.core import youtube_analyzer
from iaboard.core.youtube_analyzer import (
    Segment,
    VideoInfo,
    YouTubeAnalyzer,
    build_insights,
    build_structure,
    extract_video_id,
    fallback_segment,
    format_time,
    overall_metrics,
    parse_iso8601_duration,
    recommendations,
    segment_windows,
    time_context,
)
from iaboard.main import app


def _oembed_transport(title="Live de Marketing Digital", status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "www.youtube.com"
        return httpx.Response(
            status_code,
            json={"title": title, "author_name": "Canal IA", "thumbnail_url": "https://i.ytimg.com/x.jpg"},
        )

    return httpx.MockTransport(handler)


def _segment(start, end, engagement, topics=("a", "b", "c"), audio=0.8):
    return Segment(
        start_time=start,
        end_time=end,
        visual_description="v",
        audio_analysis="a",
        emotions={"dominant": "calm"},
        key_topics=list(topics),
        engagement_score=engagement,
        technical_quality={"audioQuality": audio, "videoQuality": 0.8, "stability": 0.8},
    )


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.youtube.com/watch?v=abc123&t=10", "abc123"),
        ("https://youtu.be/xyz789?si=share", "xyz789"),
        ("https://www.youtube.com/live/live42", "live42"),
        ("https://www.youtube.com/embed/emb1", "emb1"),
        ("https://www.youtube.com/v/old1", "old1"),
        ("dQw4w9WgXcQ", "dQw4w9WgXcQ"),
    ],
)
def test_extract_video_id(url, expected):
    assert extract_video_id(url) == expected


def test_duration_and_time_helpers():
    assert parse_iso8601_duration("PT1H2M3S") == 3723
    assert parse_iso8601_duration("PT45S") == 45
    assert parse_iso8601_duration("") == 0
    assert format_time(125) == "2:05"
    assert time_context(0, 100) == "opening/introduction"
    assert time_context(10, 100) == "hook/engagement building"
    assert time_context(50, 100) == "main content delivery"
    assert time_context(96, 100) == "closing/call-to-action"


def test_segment_windows_cover_whole_video_under_cap():
    assert segment_windows(300) == [(0, 60), (60, 120), (120, 180), (180, 240), (240, 300)]
    assert segment_windows(90)[-1] == (60, 90)

    long_video = segment_windows(7200)
    assert len(long_video) == 30
    assert long_video[0] == (0, 240)
    assert long_video[-1][1] == 7200

    assert len(segment_windows(0)) == 30


def test_fallback_segment_matches_context():
    video = VideoInfo(id="v", title="t", is_live=True)
    opening = fallback_segment(video, 0, 60, "opening/introduction")
    assert opening.visual_description.startswith("Live stream opening")
    assert opening.engagement_score == 0.7
    generic = fallback_segment(video, 0, 60, "conclusion/summary")
    assert generic.emotions.dominant == "professional"


def test_insights_flag_hook_retention_and_audio():
    segments = [_segment(0, 30, 0.5, audio=0.5), _segment(30, 60, 0.9, topics=("oferta",), audio=0.5)]
    insights = build_insights(segments)
    kinds = [i.insight_type for i in insights]
    assert kinds == ["hook", "retention", "production"]
    assert insights[0].description.startswith("Hook weakly")
    assert insights[1].timestamp == 35
    assert "oferta" in insights[1].description


def test_structure_metrics_and_recommendations():
    segments = [_segment(s, s + 60, 0.5, topics=("x",)) for s in range(0, 600, 60)]
    structure = build_structure(600, segments)
    assert [p.phase for p in structure] == ["opening", "hook", "content", "interaction", "closing"]
    assert "Add more examples" in structure[2].improvements
    assert "Expand content variety" in structure[2].improvements

    metrics = overall_metrics(segments, [], structure)
    assert metrics["monetizationReadiness"] == 0.3
    assert metrics["retentionPotential"] == pytest.approx(0.6)

    video = VideoInfo(id="v", title="t", is_live=True)
    recs = recommendations(video, structure, metrics)
    assert "Improve opening, hook, content, interaction, closing sections for better flow" in recs["immediate"]
    assert "Integrate natural product mentions and CTAs" in recs["shortTerm"]
    assert recs["longTerm"][-1] == "Develop hybrid live/recorded content strategy"


def test_video_info_falls_back_to_oembed():
    async def inner():
        analyzer = YouTubeAnalyzer(transport=_oembed_transport())
        info = await analyzer.get_video_info("abc")
        assert info.title == "Live de Marketing Digital"
        assert info.is_live is True
        assert info.channel_title == "Canal IA"
        assert info.duration == 0

    asyncio.run(inner())


def test_video_info_failure_raises():
    async def inner():
        analyzer = YouTubeAnalyzer(transport=_oembed_transport(status_code=404))
        with pytest.raises(RuntimeError, match="Could not fetch video information"):
            await analyzer.get_video_info("missing")

    asyncio.run(inner())


def test_video_info_prefers_data_api(monkeypatch):
    from iaboard import settings as settings_module

    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    settings_module.get_settings.cache_clear()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "www.googleapis.com"
        assert request.url.params["key"] == "g-key"
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "snippet": {"title": "Aula 1", "channelTitle": "Escola", "thumbnails": {}},
                        "contentDetails": {"duration": "PT10M"},
                    }
                ]
            },
        )

    async def inner():
        info = await YouTubeAnalyzer(transport=httpx.MockTransport(handler)).get_video_info("a1")
        assert info.title == "Aula 1"
        assert info.duration == 600
        assert info.is_live is False

    asyncio.run(inner())


def test_analyze_uses_model_segments_and_falls_back_on_bad_json():
    async def inner():
        class A:
            def __init__(self):
                self.calls = 0

            async def acomplete(self, prompt, json_mode=False, **kwargs):
                self.calls += 1
                if "0:00 - 1:00" in prompt:
                    return json.dumps(
                        {
                            "visualDescription": "close no apresentador",
                            "audioAnalysis": "voz firme",
                            "emotions": {"dominant": "excited", "confidence": 0.9},
                            "keyTopics": ["abertura"],
                            "engagementScore": 0.95,
                        }
                    )
                return '{"engagementScore": 7}'

        adapter = A()
        analyzer = YouTubeAnalyzer(adapter=adapter, transport=_oembed_transport())
        report = await analyzer.analyze("https://youtu.be/abc")
        assert adapter.calls == 30
        assert len(report.segments) == 30
        assert report.segments[0].emotions.dominant == "excited"
        assert report.segments[0].technical_quality.audioQuality == 0.7
        assert report.segments[3].key_topics == ["value proposition", "audience benefits", "credibility building"]
        assert any(i.insight_type == "retention" for i in report.insights)

    asyncio.run(inner())


def test_analysis_endpoint_persists_report(monkeypatch):
    original = youtube_analyzer.start_analysis

    def start_offline(analysis_id, url):
        return original(analysis_id, url, analyzer=YouTubeAnalyzer(transport=_oembed_transport()))

    monkeypatch.setattr(youtube_analyzer, "start_analysis", start_offline)

    with TestClient(app) as client:
        resp = client.post("/api/youtube/analyze", json={"url": "https://www.youtube.com/live/abc"})
        assert resp.status_code == 200
        analysis_id = resp.json()["analysisId"]

        for _ in range(100):
            body = client.get(f"/api/youtube/analysis/{analysis_id}").json()
            if body["status"] != "processing":
                break
            time.sleep(0.1)
        else:
            raise AssertionError("Analysis did not finish in time")

        assert body["status"] == "completed"
        assert body["videoId"] == "abc"
        assert body["analysisType"] == "live"
        assert body["title"] == "Live de Marketing Digital"
        assert len(body["segments"]) == 30
        assert body["structure"]
        assert body["metadata"]["isLive"] is True
        assert set(body["metadata"]["recommendations"]) == {"immediate", "shortTerm", "longTerm"}

        listing = client.get("/api/youtube/analyses").json()
        assert [a["id"] for a in listing] == [analysis_id]
        assert client.get("/api/youtube/analysis/999").status_code == 404


def test_failed_analysis_is_marked_failed(monkeypatch):
    original = youtube_analyzer.start_analysis

    def start_offline(analysis_id, url):
        transport = _oembed_transport(status_code=500)
        return original(analysis_id, url, analyzer=YouTubeAnalyzer(transport=transport))

    monkeypatch.setattr(youtube_analyzer, "start_analysis", start_offline)

    with TestClient(app) as client:
        analysis_id = client.post("/api/youtube/analyze", json={"url": "https://youtu.be/zzz"}).json()["analysisId"]
        for _ in range(50):
            body = client.get(f"/api/youtube/analysis/{analysis_id}").json()
            if body["status"] != "processing":
                break
            time.sleep(0.1)
        assert body["status"] == "failed"
        assert body["metadata"]["error"] == "Could not fetch video information"
