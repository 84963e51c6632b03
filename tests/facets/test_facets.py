"""Tests for identity, personality, knowledge and goal facets."""

import pytest
from pydantic import ValidationError

from ai_receptionist.facets import (
    CommunicationStyle,
    Goal,
    GoalConfig,
    GoalSystem,
    Identity,
    KnowledgeBase,
    Personality,
    PersonalityTrait,
)
from ai_receptionist.models import AgentRequest, AgentResponse, Channel, GoalType


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class TestIdentity:
    def test_defaults_derived_from_role(self):
        identity = Identity(name="Sarah", role="Receptionist")
        assert identity.title == "Receptionist"
        assert identity.backstory == "I am Sarah, working as Receptionist."
        assert identity.authority_level == "medium"
        assert len(identity.escalation_rules) == 3
        assert identity.summary() == "Sarah (Receptionist)"

    def test_rejects_unknown_authority_level(self):
        with pytest.raises(ValidationError):
            Identity(name="Sarah", role="Receptionist", authority_level="supreme")

    def test_update_role_moves_derived_title(self):
        identity = Identity(name="Sarah", role="Receptionist")
        identity.update_role("Office Manager")
        assert identity.title == "Office Manager"

        titled = Identity(name="Sam", role="Rep", title="Senior Rep")
        titled.update_role("Lead")
        assert titled.title == "Senior Rep"

    def test_list_helpers(self):
        identity = Identity(name="Sarah", role="Receptionist")
        identity.add_specialization("Scheduling")
        identity.add_specialization("Scheduling")
        identity.add_certification("CPR")
        identity.set_years_of_experience(-3)

        assert identity.specializations == ["Scheduling"]
        assert identity.years_of_experience == 0

        identity.remove_certification("CPR")
        identity.remove_escalation_rule("Complaints or sensitive situations")
        assert identity.certifications == []
        assert len(identity.escalation_rules) == 2

    def test_description(self):
        identity = Identity(
            name="Sarah", role="Receptionist", department="Front Desk", reports_to="Dana"
        )
        description = identity.get_description()
        assert description.startswith("You are Sarah, Receptionist.")
        assert "You work in the Front Desk department, reporting to Dana." in description


# ---------------------------------------------------------------------------
# Personality
# ---------------------------------------------------------------------------


class TestPersonality:
    def test_string_traits_are_described(self):
        personality = Personality(traits=["friendly", "curious"])
        assert personality.traits[0].description == "Warm and approachable"
        assert personality.traits[1].description == "Demonstrates curious in interactions"

    def test_style_name_sets_formality(self):
        personality = Personality(communication_style="formal")
        assert personality.tone == "formal"
        assert personality.formality_level == 9

    def test_trait_mutators(self):
        personality = Personality()
        personality.add_trait("empathetic")
        personality.add_trait(PersonalityTrait.from_name("empathetic"))
        assert [t.name for t in personality.traits].count("empathetic") == 1

        assert personality.remove_trait("empathetic") is True
        assert personality.remove_trait("empathetic") is False

    def test_update_communication_style(self):
        personality = Personality()
        personality.update_communication_style("casual")
        assert personality.formality_level == 3

        personality.update_communication_style({"tone": "warm"})
        assert personality.tone == "warm"
        assert personality.communication_style.primary == "casual"

    def test_formality_is_clamped(self):
        personality = Personality()
        personality.set_formality_level(42)
        assert personality.formality_level == 10
        personality.set_formality_level(-1)
        assert personality.formality_level == 1

    def test_style_rejects_out_of_range_formality(self):
        with pytest.raises(ValidationError):
            CommunicationStyle(formality_level=11)

    @pytest.mark.parametrize(
        "level, channel, fragment",
        [
            (9, Channel.CALL, "Would you mind if I have someone call you back"),
            (3, Channel.CALL, "Oops!"),
            (6, Channel.CALL, "Let me have someone reach out"),
            (9, Channel.SMS, "We apologize for the inconvenience"),
            (5, Channel.SMS, "Someone will text you back soon!"),
            (5, Channel.TEXT, "contact support if the issue persists"),
        ],
    )
    def test_error_messages_by_channel(self, level, channel, fragment):
        personality = Personality()
        personality.set_formality_level(level)
        assert fragment in personality.get_error_message(channel)

    def test_email_signature_follows_tone(self):
        assert Personality(communication_style="formal").get_error_message(
            Channel.EMAIL
        ).endswith("Customer Service Team")
        assert Personality().get_error_message(Channel.EMAIL).endswith("The Team")

    def test_description(self):
        description = Personality(traits=["friendly"]).get_description()
        assert "- **friendly**: Warm and approachable" in description
        assert "Formality Level: 7/10" in description


# ---------------------------------------------------------------------------
# Knowledge
# ---------------------------------------------------------------------------


class TestKnowledgeBase:
    def test_defaults(self):
        knowledge = KnowledgeBase(domain="Dental care")
        assert knowledge.known_domains == ["Dental care"]
        assert knowledge.languages.fluent == ["English"]
        assert len(knowledge.limitations) == 3

    def test_language_list_means_fluent(self):
        knowledge = KnowledgeBase(domain="Dental care", languages=["English", "Spanish"])
        assert knowledge.languages.fluent == ["English", "Spanish"]
        assert knowledge.languages.conversational == []

    def test_has_knowledge_checks_domains_and_expertise(self):
        knowledge = KnowledgeBase(domain="Dental care", expertise=["Orthodontics"])
        assert knowledge.has_knowledge("dental")
        assert knowledge.has_knowledge("ortho")
        assert not knowledge.has_knowledge("plumbing")

    def test_is_limited_knowledge(self):
        knowledge = KnowledgeBase(domain="Dental care")
        assert knowledge.is_limited_knowledge("real-time data")
        assert not knowledge.is_limited_knowledge("teeth")

    def test_description(self):
        description = KnowledgeBase(domain="Dental care").get_description()
        assert "You are an expert in: **Dental care**" in description
        assert "- Fluent in: English" in description


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


class TestGoalSystem:
    @pytest.fixture
    def goals(self):
        return GoalSystem.from_config(
            GoalConfig(
                primary="Book appointments",
                secondary=["Answer questions", "Collect reviews"],
                constraints=["Stay polite"],
                metrics={"reviews": "5 per week"},
            )
        )

    def test_from_config(self, goals):
        primary = goals.get_primary()
        assert primary.name == "Primary Goal"
        assert primary.priority == 1
        assert primary.constraints == ["Stay polite"]

        secondary = goals.get_secondary()
        assert [g.name for g in secondary] == ["Secondary Goal 1", "Secondary Goal 2"]
        assert [g.priority for g in secondary] == [2, 3]
        assert secondary[1].metric == "5 per week"
        assert secondary[0].metric is None

    def test_track_progress_uses_confidence(self, goals):
        request = AgentRequest(input="hi", conversation_id="c1")
        goals.track_progress(request, AgentResponse(content="ok", channel=Channel.TEXT,
                                                    metadata={"confidence": 0.9}))
        goals.track_progress(request, AgentResponse(content="ok", channel=Channel.TEXT))

        stats = goals.get_progress_stats()
        assert stats["total_interactions"] == 2
        assert stats["goal_contributions"]["Primary Goal"] == 1

    def test_progress_log_is_bounded(self, goals):
        request = AgentRequest(input="hi", conversation_id="c1")
        response = AgentResponse(content="ok", channel=Channel.TEXT)
        for _ in range(105):
            goals.track_progress(request, response)
        assert goals.get_progress_stats()["total_interactions"] == 100

    def test_add_update_remove(self, goals):
        goals.add_goal(
            Goal(name="Upsell", description="Offer plans", type=GoalType.SECONDARY, priority=4)
        )
        assert goals.update_goal("Upsell", priority=9)
        assert next(g for g in goals.get_current() if g.name == "Upsell").priority == 9
        assert not goals.update_goal("Missing", priority=1)

        assert goals.remove_goal("Upsell")
        assert not goals.remove_goal("Upsell")

    def test_description(self, goals):
        description = goals.get_description()
        assert "### Primary Goal\nBook appointments" in description
        assert "3. Collect reviews (Metric: 5 per week)" in description
        assert "- Stay polite" in description
