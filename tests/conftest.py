"""Pytest configuration and shared fakes.

Puts the project root on ``sys.path`` so the ``animator`` and ``veo_client``
packages import without an install, and provides an in-memory stand-in for
the Veo client that records every call.
"""
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from animator.models import AspectRatio, GenerationRequest, SourceImage  # noqa: E402
from animator.resources import ResourceLifecycleManager  # noqa: E402
from veo_client.models import GenerationJob  # noqa: E402

AUTH_SIGNAL = "Requested entity was not found"


class FakeVeoClient:
    """Scripted client: ``poll`` walks through ``poll_jobs`` and then repeats the last one."""

    def __init__(
        self,
        submit_job=None,
        poll_jobs=(),
        asset=b"fake-video",
        submit_error=None,
        poll_error=None,
        fetch_error=None,
    ):
        self.submit_job = submit_job or GenerationJob(name="operations/job-1")
        self.poll_jobs = list(poll_jobs)
        self.asset = asset
        self.submit_error = submit_error
        self.poll_error = poll_error
        self.fetch_error = fetch_error
        self.calls = []
        self.on_fetch = None

    async def submit(self, prompt, image_base64, mime_type, aspect_ratio):
        self.calls.append(("submit", prompt, mime_type, aspect_ratio))
        if self.submit_error:
            raise self.submit_error
        return self.submit_job

    async def poll(self, job):
        self.calls.append(("poll", job.name))
        if self.poll_error:
            raise self.poll_error
        if len(self.poll_jobs) > 1:
            return self.poll_jobs.pop(0)
        return self.poll_jobs[0]

    async def fetch_asset(self, result_ref, credential=None):
        self.calls.append(("fetch", result_ref, credential))
        if self.on_fetch:
            self.on_fetch()
        if self.fetch_error:
            raise self.fetch_error
        return self.asset

    def is_auth_error(self, exc):
        return AUTH_SIGNAL in str(exc)

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


class RecordingSleep:
    """Replacement for ``asyncio.sleep`` that returns at once and records delays."""

    def __init__(self, hook=None):
        self.delays = []
        self.hook = hook

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.hook:
            self.hook(len(self.delays))


@pytest.fixture
def resources(tmp_path):
    manager = ResourceLifecycleManager(directory=tmp_path)
    yield manager
    manager.close()


@pytest.fixture
def image():
    return SourceImage(mime_type="image/jpeg", data=b"\xff\xd8\xff\xe0fake-jpeg")


@pytest.fixture
def request_for(image):
    def build(prompt="a gentle breeze", aspect_ratio=AspectRatio.LANDSCAPE, source=image):
        return GenerationRequest(source_image=source, prompt=prompt, aspect_ratio=aspect_ratio)
    return build


@pytest.fixture(autouse=True)
def _no_env_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
