"""Tests for intent recognition and the offline design builder."""

from unittest.mock import patch

import pytest

from miniapp.llm.base import GenerationError, GenerationErrorKind
from miniapp.llm.heuristic_provider import HeuristicSpecGenerator
from miniapp.models.design import DesignComponentType
from miniapp.services.local_builder import (
    IntentKind,
    LocalDesignBuilder,
    RequirementParser,
    make_name,
    match_template,
    recognize_intent,
)
from miniapp.services.validator import design_validator


class TestIntent:
    def test_build_intent_carries_requirements(self):
        intent = recognize_intent("Build me a weather app")
        assert intent.kind is IntentKind.BUILD_APP
        assert len(intent.requirements) == 5
        assert intent.summary == "build_app (5 requirements)"

    def test_modify_intent(self):
        assert recognize_intent("Please change the colors").kind is IntentKind.MODIFY_APP

    def test_general_chat(self):
        intent = recognize_intent("hello there")
        assert intent.kind is IntentKind.GENERAL_CHAT
        assert intent.summary == "general_chat"


class TestTemplates:
    def test_best_keyword_match(self):
        assert match_template("an alarm clock").id == "clock"
        assert match_template("track my budget and expense").id == "finance"

    def test_no_match(self):
        assert match_template("a journaling space") is None


class TestRequirements:
    def test_template_requirements(self):
        requirements = RequirementParser().parse_requirements("a recipe book")
        assert requirements[-1] == "CTA to save recipe to favorites"

    def test_split_and_expand(self):
        requirements = RequirementParser().parse_requirements(
            "A journaling space. Entry feed, mood picker"
        )
        assert requirements == [
            "A journaling space",
            "Scrollable card list titled Entry feed with avatars and metadata",
            "Mood picker",
        ]

    def test_fallbacks(self):
        parser = RequirementParser()
        assert parser.parse_requirements("dashboard")[0] == "Hero header with quick stats"
        assert parser.fallback_requirements("group chat")[0] == "Conversation list with unread badges"
        assert len(parser.parse_requirements("zzz")) == 4


class TestDesignBuilder:
    def test_template_design(self):
        design = LocalDesignBuilder().build_design("alarm clock", [])
        children = design.root_component.children

        assert design.name == "Clock Control Center"
        assert design.metadata.author == "Template: Clock Control Center"
        assert children[0].layout.y == 32
        cta = children[-1]
        assert cta.type is DesignComponentType.BUTTON
        assert cta.data.text == "Add new alarm"
        assert cta.layout.height == 56
        assert all(c.parent_id == design.root_component.id for c in children)

    def test_generic_design(self):
        builder = LocalDesignBuilder()
        design = builder.build_design(
            "Build me a journaling space",
            ["Entry list of recent notes", "Email form field", "Stats chart"],
        )
        kinds = [c.type for c in design.root_component.children]

        assert kinds == [
            DesignComponentType.TEXT,
            DesignComponentType.LIST,
            DesignComponentType.INPUT,
            DesignComponentType.CARD,
            DesignComponentType.BUTTON,
        ]
        assert design.root_component.children[0].data.text == "A journaling space"
        assert design.root_component.children[2].data.placeholder == "Email address"
        assert design.root_component.children[-1].data.text == "Try the prototype"
        assert design.root_component.layout.width == 375
        assert design.root_component.layout.height == 812
        assert design.metadata.author == "Local Builder"
        assert set(design.global_styles) == {"primaryButton", "bodyText"}

    def test_nothing_to_build(self):
        with pytest.raises(GenerationError) as exc_info:
            LocalDesignBuilder().build_design("a journaling space", [])
        assert exc_info.value.kind is GenerationErrorKind.PARSE_FAILED

    @pytest.mark.parametrize("prompt", ["alarm clock", "weather", "todo planner", "group chat", "zzz"])
    def test_local_designs_validate(self, prompt):
        design = HeuristicSpecGenerator().build_design(prompt)
        assert design_validator.validate(design).is_valid

    def test_make_name(self):
        assert make_name("cozy reading nook tracker") == "Cozy Reading Nook Prototype"
        assert make_name("   ") == "Generated App"


class TestHeuristicGenerator:
    def test_empty_prompt(self):
        with pytest.raises(GenerationError) as exc_info:
            HeuristicSpecGenerator().build_design("  ")
        assert exc_info.value.kind is GenerationErrorKind.EMPTY_INPUT

    @pytest.mark.asyncio
    async def test_generate_spec(self):
        spec = await HeuristicSpecGenerator().generate_spec("Build a fitness tracker")
        assert spec.name == "Fitness Companion"
        assert len(spec.pages) == 1
        buttons = [c for c in spec.components() if c.type.value == "button"]
        assert buttons and all(b.action_ids for b in buttons)

    @pytest.mark.parametrize("prompt", ["Build me a weather app", "hello there"])
    def test_requirements_follow_the_recognized_intent(self, prompt):
        expected = recognize_intent(prompt).requirements or RequirementParser().parse_requirements(prompt)
        with patch("miniapp.llm.heuristic_provider.local_design_builder") as builder:
            HeuristicSpecGenerator().build_design(prompt)
        builder.build_design.assert_called_once_with(prompt, expected)
