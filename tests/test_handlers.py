import asyncio
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from learnflow.cache.registry import create_caches
from learnflow.client import JobQueue
from learnflow.common.exceptions import HandlerError, InvalidPayload
from learnflow.config import Settings
from learnflow.jobs import BackgroundJobs, LearningServices


def make_services(videos=None, paths=None):
    videos = videos if videos is not None else {}
    paths = paths if paths is not None else {}

    async def find_video(video_id, user_id):
        return videos.get((video_id, user_id))

    async def find_path(path_id):
        return paths.get(path_id)

    return LearningServices(
        find_video=AsyncMock(side_effect=find_video),
        save_video=AsyncMock(),
        analyze_video=AsyncMock(
            return_value={"skills": ["python"], "careers": ["backend"], "score": 87}
        ),
        generate_suggestions=AsyncMock(return_value=[{"title": "Learn SQL"}]),
        calculate_readiness=AsyncMock(return_value={"score": 72, "gaps": ["sql"]}),
        update_path_readiness=AsyncMock(),
        find_path=AsyncMock(side_effect=find_path),
        save_path=AsyncMock(),
    )


# --- Fixtures ---
@pytest_asyncio.fixture
async def queue():
    q = JobQueue(retry_attempts=2, retry_delay=0.01)
    yield q
    await q.close()


@pytest.fixture
def caches():
    return create_caches(Settings())


def build_jobs(queue, caches, **store):
    services = make_services(**store)
    return BackgroundJobs(queue, caches, services).register(), services


# --- Registration ---

@pytest.mark.asyncio
async def test_register_adds_every_job_type(queue, caches):
    build_jobs(queue, caches)
    assert queue.registry.list_handlers() == [
        "video_analysis",
        "ai_suggestions",
        "readiness_calc",
        "path_inference",
        "batch_video_analysis",
    ]


@pytest.mark.asyncio
async def test_shortcuts_validate_payloads(queue, caches):
    jobs, _ = build_jobs(queue, caches)
    with pytest.raises(InvalidPayload):
        jobs.update_path_inference("p1", "u1", mode="partial")


# --- Video analysis ---

@pytest.mark.asyncio
async def test_video_analysis_analyzes_saves_and_caches(queue, caches):
    video = {"title": "Intro to Python", "description": None, "channel_title": "CodeLearnn"}
    jobs, services = build_jobs(queue, caches, videos={("v1", "u1"): video})

    handle = queue.enqueue("video_analysis", {"video_id": "v1", "user_id": "u1"})
    result = await handle.result(timeout=2)

    services.analyze_video.assert_awaited_once_with("Intro to Python", "", "CodeLearnn")
    services.save_video.assert_awaited_once()
    assert result["inferred_skills"] == ["python"]
    assert result["codelearnn_score"] == 87
    assert caches["video_analysis"].get("analysis", "v1") == {
        "skills": ["python"],
        "careers": ["backend"],
        "score": 87,
    }


@pytest.mark.asyncio
async def test_video_analysis_returns_cached_summary(queue, caches):
    jobs, services = build_jobs(queue, caches)
    caches["video_analysis"].set("analysis", "v1", {"skills": ["go"], "careers": [], "score": 50})

    handle = queue.enqueue("video_analysis", {"video_id": "v1", "user_id": "u1"})

    assert (await handle.result(timeout=2))["skills"] == ["go"]
    services.find_video.assert_not_awaited()


@pytest.mark.asyncio
async def test_video_analysis_reuses_existing_analysis(queue, caches):
    video = {"title": "t", "inferred_skills": ["rust"], "inferred_careers": [], "codelearnn_score": 60}
    jobs, services = build_jobs(queue, caches, videos={("v1", "u1"): video})

    await queue.enqueue("video_analysis", {"video_id": "v1", "user_id": "u1"}).result(timeout=2)

    services.analyze_video.assert_not_awaited()
    assert caches["video_analysis"].get("analysis", "v1")["skills"] == ["rust"]


@pytest.mark.asyncio
async def test_force_refresh_skips_cache(queue, caches):
    video = {"title": "t", "inferred_skills": ["rust"], "codelearnn_score": 60}
    jobs, services = build_jobs(queue, caches, videos={("v1", "u1"): video})
    caches["video_analysis"].set("analysis", "v1", {"skills": ["old"]})

    jobs.analyze_video("v1", "u1", force_refresh=True)
    await queue.join(timeout=2)

    services.analyze_video.assert_awaited_once()
    assert caches["video_analysis"].get("analysis", "v1")["skills"] == ["python"]


@pytest.mark.asyncio
async def test_missing_video_fails_after_retries(queue, caches):
    jobs, services = build_jobs(queue, caches)

    handle = queue.enqueue("video_analysis", {"video_id": "nope", "user_id": "u1"})

    with pytest.raises(HandlerError, match="Video nope not found"):
        await handle.result(timeout=2)
    assert handle.job.attempts == 2


# --- Suggestions and readiness ---

@pytest.mark.asyncio
async def test_ai_suggestions_returns_generated_list(queue, caches):
    jobs, services = build_jobs(queue, caches)

    job_id = jobs.generate_suggestions("p1", "u1", "node_completed", {"node": "n1"})
    await queue.join(timeout=2)

    assert queue.get_job(job_id).result == [{"title": "Learn SQL"}]
    services.generate_suggestions.assert_awaited_once_with("p1", "u1", "node_completed", {"node": "n1"})


@pytest.mark.asyncio
async def test_readiness_is_computed_then_cached(queue, caches):
    jobs, services = build_jobs(queue, caches)

    first = jobs.calculate_readiness("u1", path_id="p1")
    await queue.join(timeout=2)
    second = jobs.calculate_readiness("u1")
    await queue.join(timeout=2)

    assert queue.get_job(first).result == {"score": 72, "gaps": ["sql"]}
    assert queue.get_job(second).result == {"score": 72, "gaps": ["sql"]}
    services.calculate_readiness.assert_awaited_once_with("u1", None)
    services.update_path_readiness.assert_awaited_once_with("p1", "u1")
    assert caches["readiness"].get("score", "u1_default") == {"score": 72, "gaps": ["sql"]}


# --- Path inference ---

def make_path(inferred_skills, inferred_careers):
    return {
        "structure_graph": {
            "nodes": [
                {"skills": ["python", "sql"], "careers": ["backend"]},
                {"skills": ["python"], "careers": []},
                {},
            ]
        },
        "inferred_skills": inferred_skills,
        "inferred_careers": inferred_careers,
    }


@pytest.mark.asyncio
async def test_path_inference_updates_changed_path(queue, caches):
    path = make_path([], [])
    jobs, services = build_jobs(queue, caches, paths={"p1": path})
    caches["readiness"].set("score", "u1_default", {"score": 10})

    job_id = jobs.update_path_inference("p1", "u1")
    await queue.join(timeout=2)

    assert queue.get_job(job_id).result == {
        "skills": ["python", "sql"],
        "careers": ["backend"],
        "changed": True,
    }
    services.save_path.assert_awaited_once()
    assert path["inferred_skills"] == ["python", "sql"]
    assert caches["readiness"].get("score", "u1_default") is None


@pytest.mark.asyncio
async def test_path_inference_skips_unchanged_path_in_diff_mode(queue, caches):
    jobs, services = build_jobs(queue, caches, paths={"p1": make_path(["sql", "python"], ["backend"])})

    job_id = jobs.update_path_inference("p1", "u1")
    await queue.join(timeout=2)

    assert queue.get_job(job_id).result["changed"] is False
    services.save_path.assert_not_awaited()


@pytest.mark.asyncio
async def test_path_inference_full_mode_always_saves(queue, caches):
    jobs, services = build_jobs(queue, caches, paths={"p1": make_path(["python", "sql"], ["backend"])})

    jobs.update_path_inference("p1", "u1", mode="full")
    await queue.join(timeout=2)

    services.save_path.assert_awaited_once()


# --- Batch video analysis ---

@pytest.mark.asyncio
async def test_batch_enqueues_delayed_video_jobs(queue, caches):
    jobs, _ = build_jobs(queue, caches)

    batch_id = jobs.batch_analyze_videos(["v1", "v2"], "u1", delay_between=10)
    await wait_for_status(queue, batch_id, "completed")

    assert queue.get_job(batch_id).result == {"successful": ["v1", "v2"], "failed": []}
    video_jobs = queue.list_jobs(job_type="video_analysis")
    assert [job.payload.video_id for job in video_jobs] == ["v1", "v2"]
    assert all(job.status == "pending" and job.delay == 10 for job in video_jobs)


async def wait_for_status(queue, job_id, status, timeout=2.0):
    async def _poll():
        while queue.get_job(job_id).status != status:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)
