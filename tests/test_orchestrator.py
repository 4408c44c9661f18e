"""Tests for the build state machine and prompt builds."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from miniapp.llm.base import BaseSpecGenerator, GenerationError, GenerationErrorKind
from miniapp.llm.openai_provider import OpenAISpecGenerator
from miniapp.models.creation import ChatRole
from miniapp.models.spec import decode_spec
from miniapp.services.orchestrator import (
    BUILD_COMPLETED_MESSAGE,
    BuildOrchestrator,
    BuildStateError,
    BuildStatus,
)
from miniapp.services.runtime import MiniAppRuntime


def _offline(fallback_enabled=True):
    return BuildOrchestrator(
        generator=OpenAISpecGenerator(config={"api_key": None}),
        fallback_enabled=fallback_enabled,
    )


def _with_generator(side_effect):
    generator = MagicMock(spec=BaseSpecGenerator)
    generator.generate_spec = AsyncMock(side_effect=side_effect)
    return BuildOrchestrator(generator=generator, fallback_enabled=True), generator


class TestStateMachine:
    def test_starts_idle(self):
        orchestrator = _offline()
        assert orchestrator.status is BuildStatus.IDLE
        assert orchestrator.progress == 0.0
        assert orchestrator.detail == ""
        assert not orchestrator.is_building

    def test_illegal_transition(self):
        orchestrator = _offline()
        with pytest.raises(BuildStateError) as exc_info:
            orchestrator._transition(BuildStatus.RUNNING)
        assert exc_info.value.current is BuildStatus.IDLE
        assert orchestrator.status is BuildStatus.IDLE

    def test_failed_detail_includes_message(self):
        orchestrator = _offline()
        orchestrator._transition(BuildStatus.DESIGNING)
        orchestrator._fail("no luck")
        assert orchestrator.detail == "Build failed: no luck"
        assert orchestrator.progress == 0.0


class TestFullCycle:
    def test_valid_design_skips_debugging(self, simple_design):
        runtime = MiniAppRuntime()
        orchestrator = BuildOrchestrator(runtime=runtime, generator=MagicMock(spec=BaseSpecGenerator))

        report = orchestrator.run_full_cycle(simple_design)

        assert report.status is BuildStatus.COMPLETED
        assert not report.repaired
        assert orchestrator.progress == 1.0
        assert orchestrator.detail == "App build complete! ✓"
        assert runtime.is_loaded
        assert runtime.current_page_id == "page-design-1"

    def test_broken_design_is_repaired(self, broken_design):
        orchestrator = BuildOrchestrator(generator=MagicMock(spec=BaseSpecGenerator))

        report = orchestrator.run_full_cycle(broken_design)

        assert report.status is BuildStatus.COMPLETED
        assert report.repaired
        assert not report.original_validation.is_valid
        assert report.final_validation.is_valid
        assert report.issues_resolved >= 3
        assert report.score_delta > 0
        assert orchestrator.current_design.root_component.children[2].data.text == "Tap"

    def test_without_auto_debug(self, broken_design):
        orchestrator = BuildOrchestrator(generator=MagicMock(spec=BaseSpecGenerator))
        report = orchestrator.run_full_cycle(broken_design, auto_debug=False)
        assert not report.repaired
        assert report.final_validation == report.original_validation

    def test_load_spec(self, counter_spec):
        orchestrator = BuildOrchestrator(generator=MagicMock(spec=BaseSpecGenerator))
        report = orchestrator.load_spec(counter_spec)
        assert report.status is BuildStatus.COMPLETED
        assert report.source == "spec"
        assert orchestrator.runtime.current_page_id == "home"

    def test_back_to_back_builds(self, simple_design, counter_spec):
        orchestrator = BuildOrchestrator(generator=MagicMock(spec=BaseSpecGenerator))
        orchestrator.run_full_cycle(simple_design)
        orchestrator.load_spec(counter_spec)
        assert orchestrator.status is BuildStatus.COMPLETED


class TestPromptBuilds:
    @pytest.mark.asyncio
    async def test_remote_success(self, counter_spec):
        orchestrator, generator = _with_generator([counter_spec])

        report = await orchestrator.build_from_prompt("Build a counter")

        assert report.status is BuildStatus.COMPLETED
        assert report.source == "remote"
        assert [m.content for m in report.messages] == [BUILD_COMPLETED_MESSAGE]
        assert orchestrator.messages[0].role is ChatRole.USER
        generator.generate_spec.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_key_falls_back_to_local_build(self):
        orchestrator = _offline()

        report = await orchestrator.build_from_prompt("Build me an alarm clock")

        assert report.status is BuildStatus.COMPLETED
        assert report.source == "local"
        assert report.design.name == "Clock Control Center"
        first, last = report.messages
        assert first.content.startswith("The generation API key is not configured.")
        assert first.content.endswith("Building a local prototype instead.")
        assert last.content == BUILD_COMPLETED_MESSAGE
        assert orchestrator.runtime.is_loaded

    @pytest.mark.asyncio
    async def test_fallback_disabled(self):
        orchestrator = _offline(fallback_enabled=False)

        report = await orchestrator.build_from_prompt("Build me an alarm clock")

        assert report.status is BuildStatus.FAILED
        assert orchestrator.detail.startswith("Build failed: The generation API key")
        assert report.messages[0].content.startswith("I encountered an error while building your app:")
        assert not orchestrator.runtime.is_loaded

    @pytest.mark.asyncio
    async def test_local_build_error_fails(self):
        orchestrator = _offline()

        report = await orchestrator.build_from_prompt("   ")

        assert report.status is BuildStatus.FAILED
        assert report.error == "I need a user prompt to respond to."
        assert len(report.messages) == 2

    @pytest.mark.asyncio
    async def test_upstream_error_message_is_shown(self):
        error = GenerationError(GenerationErrorKind.UPSTREAM_ERROR, detail="quota exceeded", status_code=429)
        orchestrator, _ = _with_generator(error)

        report = await orchestrator.build_from_prompt("Build a weather app")

        assert report.source == "local"
        assert report.messages[0].content.startswith("Generation API error: quota exceeded")

    @pytest.mark.asyncio
    async def test_newer_build_supersedes_older(self, counter_spec):
        release = asyncio.Event()

        async def generate(prompt, history=()):
            if prompt == "slow":
                await release.wait()
            return counter_spec

        orchestrator, _ = _with_generator(generate)

        slow = asyncio.create_task(orchestrator.build_from_prompt("slow"))
        await asyncio.sleep(0)
        fast = await orchestrator.build_from_prompt("fast")
        release.set()

        assert fast.status is BuildStatus.COMPLETED
        assert await slow is None
        assert orchestrator.status is BuildStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_reset_discards_pending_build(self, counter_spec):
        release = asyncio.Event()

        async def generate(prompt, history=()):
            await release.wait()
            return counter_spec

        orchestrator, _ = _with_generator(generate)
        pending = asyncio.create_task(orchestrator.build_from_prompt("slow"))
        await asyncio.sleep(0)
        assert orchestrator.is_building

        orchestrator.reset()
        release.set()

        assert await pending is None
        assert orchestrator.status is BuildStatus.IDLE
        assert not orchestrator.runtime.is_loaded

    @pytest.mark.asyncio
    async def test_unexpected_generator_error_falls_back(self):
        orchestrator, _ = _with_generator(RuntimeError("client exploded"))

        report = await orchestrator.build_from_prompt("Build me an alarm clock")

        assert report.status is BuildStatus.COMPLETED
        assert report.source == "local"
        assert report.messages[0].content.startswith("Received an invalid response from the generation API.")
        assert not orchestrator.is_building

    @pytest.mark.asyncio
    async def test_direct_spec_load_supersedes_pending_prompt_build(self, counter_spec_payload):
        release = asyncio.Event()
        remote = decode_spec({**counter_spec_payload, "name": "Remote"})

        async def generate(prompt, history=()):
            await release.wait()
            return remote

        orchestrator, _ = _with_generator(generate)
        pending = asyncio.create_task(orchestrator.build_from_prompt("slow"))
        await asyncio.sleep(0)

        report = orchestrator.load_spec(decode_spec(counter_spec_payload))
        release.set()

        assert report.status is BuildStatus.COMPLETED
        assert await pending is None
        assert orchestrator.runtime.spec.name == "Counter"
        assert orchestrator.spec.name == "Counter"

    @pytest.mark.asyncio
    async def test_design_build_supersedes_pending_prompt_build(self, simple_design, counter_spec):
        release = asyncio.Event()

        async def generate(prompt, history=()):
            await release.wait()
            return counter_spec

        orchestrator, _ = _with_generator(generate)
        pending = asyncio.create_task(orchestrator.build_from_prompt("slow"))
        await asyncio.sleep(0)

        orchestrator.run_full_cycle(simple_design)
        release.set()

        assert await pending is None
        assert orchestrator.runtime.spec.name == "Simple"
        assert orchestrator.current_design.id == simple_design.id
