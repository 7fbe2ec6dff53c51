"""Tests for the taxonomy-driven pattern classifier."""

import pytest

from helpdesk.core import ClassifierUnavailable, MalformedResponse, ProviderError
from helpdesk.triage.application import PatternClassifier
from helpdesk.triage.domain import DEFAULT_SUPPORT_GROUPS, SupportGroup

from conftest import FakeTextGenerator, pattern_reply


def classifier_for(reply: str) -> PatternClassifier:
    return PatternClassifier(FakeTextGenerator(reply=reply))


class TestPrompts:

    def test_system_prompt_lists_responsibilities_then_examples(self):
        classifier = PatternClassifier(FakeTextGenerator())
        prompt = classifier.system_prompt

        for group in DEFAULT_SUPPORT_GROUPS:
            assert f"{group.name}: {group.responsibilities}" in prompt
            assert f"{group.name} examples:" in prompt
            for example in group.examples:
                assert f"- {example}" in prompt

        assert prompt.index("Server Operations: ") < prompt.index("Network Operations examples:")
        assert '"primaryGroup"' in prompt
        assert '"alternativeGroups"' in prompt

    def test_custom_taxonomy_drives_prompt(self):
        groups = (SupportGroup("Facilities", "Buildings and desks", ("Broken chair",)),)
        classifier = PatternClassifier(FakeTextGenerator(), groups=groups)

        assert "Facilities: Buildings and desks" in classifier.system_prompt
        assert "Network Operations" not in classifier.system_prompt.split("Format your response")[0]

    @pytest.mark.asyncio
    async def test_user_prompt_and_temperature(self):
        generator = FakeTextGenerator(reply=pattern_reply("Network Operations"))
        classifier = PatternClassifier(generator, temperature=0.3)

        await classifier.classify("VPN down", None)

        call = generator.calls[0]
        assert call["user_prompt"] == (
            "Ticket Subject: VPN down\n\nTicket Description: No description provided"
        )
        assert call["temperature"] == 0.3

    def test_empty_taxonomy_rejected(self):
        with pytest.raises(ValueError):
            PatternClassifier(FakeTextGenerator(), groups=())


class TestClassify:

    @pytest.mark.asyncio
    async def test_parses_reply(self):
        reply = pattern_reply(
            "Network Operations", 85,
            alternatives=[("Security", 40), ("Server Operations", 20)],
        )

        result = await classifier_for(reply).classify("Cannot connect to VPN", "From home")

        assert result.primary_group.name == "Network Operations"
        assert result.primary_group.confidence == 85
        assert [a.name for a in result.alternative_groups] == ["Security", "Server Operations"]
        assert result.model_used == "fake-model"
        assert result.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_strips_code_fences(self):
        reply = pattern_reply("Security", 90, fenced=True)

        result = await classifier_for(reply).classify("Phishing email", "")

        assert result.primary_group.name == "Security"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("opening", ["```JSON", "```Json", "```", "``` json"])
    async def test_fence_language_tag_is_optional_and_case_insensitive(self, opening):
        reply = f"Here you go:\n{opening}\n{pattern_reply('Security', 90)}\n```"

        result = await classifier_for(reply).classify("Phishing email", "")

        assert result.primary_group.name == "Security"
        assert result.primary_group.confidence == 90

    @pytest.mark.asyncio
    async def test_group_names_are_canonicalised(self):
        reply = pattern_reply("  desktop SUPPORT ", 70, alternatives=[("security", 30)])

        result = await classifier_for(reply).classify("Laptop won't boot", "")

        assert result.primary_group.name == "Desktop Support"
        assert result.alternative_groups[0].name == "Security"

    @pytest.mark.asyncio
    async def test_fractional_confidence_rounded_half_up(self):
        result = await classifier_for(pattern_reply("Security", 72.5)).classify("MFA", "")

        assert result.primary_group.confidence == 73

    @pytest.mark.asyncio
    async def test_alternatives_filtered_and_capped(self):
        reply = pattern_reply(
            "Security", 80,
            alternatives=[
                ("Security", 70),
                ("Payroll", 60),
                ("Desktop Support", 50),
                ("desktop support", 45),
                ("Network Operations", 40),
                ("Server Operations", 30),
            ],
        )

        result = await classifier_for(reply).classify("Suspicious login", "")

        assert [a.name for a in result.alternative_groups] == ["Desktop Support", "Network Operations"]
        assert all(a.name != result.primary_group.name for a in result.alternative_groups)

    @pytest.mark.asyncio
    async def test_missing_alternatives_allowed(self):
        reply = '{"primaryGroup": {"name": "Security", "confidence": 60, "reasoning": "x"}}'

        result = await classifier_for(reply).classify("Badge lost", "")

        assert result.alternative_groups == ()

    @pytest.mark.asyncio
    async def test_unknown_primary_is_malformed(self):
        with pytest.raises(MalformedResponse, match="Unknown support group"):
            await classifier_for(pattern_reply("Payroll", 80)).classify("Salary", "")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [
        "I think this is a network problem.",
        "[1, 2, 3]",
        '{"primaryGroup": {"name": "Security"}}',
        '{"primaryGroup": {"name": "Security", "confidence": 150}}',
        '{"alternativeGroups": []}',
    ])
    async def test_malformed_replies(self, reply):
        with pytest.raises(MalformedResponse) as exc_info:
            await classifier_for(reply).classify("Anything", "")

        assert exc_info.value.raw_content == reply

    @pytest.mark.asyncio
    async def test_provider_failure_is_unavailable(self):
        generator = FakeTextGenerator(error=ProviderError("rate limited"))

        with pytest.raises(ClassifierUnavailable, match="rate limited"):
            await PatternClassifier(generator).classify("VPN", "")

        assert len(generator.calls) == 1
