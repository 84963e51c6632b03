"""How the agent behaves: traits, communication style and fallback messages."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from ..models import Channel

TRAIT_DESCRIPTIONS = {
    "professional": "Maintains professionalism in all interactions",
    "helpful": "Eager to assist and provide value",
    "patient": "Takes time to understand and explain thoroughly",
    "empathetic": "Shows understanding and compassion",
    "analytical": "Takes a logical, data-driven approach",
    "enthusiastic": "Brings positive energy to conversations",
    "consultative": "Asks questions to understand needs deeply",
    "assertive": "Confident and direct in communication",
    "friendly": "Warm and approachable",
    "detail-oriented": "Pays attention to specifics and accuracy",
}

STYLE_FORMALITY = {
    "casual": 3,
    "friendly": 5,
    "professional": 7,
    "formal": 9,
    "consultative": 7,
    "empathetic": 6,
    "analytical": 8,
    "assertive": 6,
}

DEFAULT_ADAPTABILITY_RULES = [
    "Mirror the user's formality level",
    "Increase empathy when detecting frustration",
    "Simplify language when detecting confusion",
    "Be more direct when detecting urgency",
]

Level = Literal["low", "medium", "high"]


def describe_trait(trait: str) -> str:
    return TRAIT_DESCRIPTIONS.get(trait.lower(), f"Demonstrates {trait} in interactions")


class PersonalityTrait(BaseModel):
    name: str
    description: str
    weight: float = 1.0

    @classmethod
    def from_name(cls, name: str) -> "PersonalityTrait":
        return cls(name=name, description=describe_trait(name))


class CommunicationStyle(BaseModel):
    primary: str = "professional"
    tone: str = "professional"
    formality_level: int = Field(default=7, ge=1, le=10)

    @classmethod
    def from_name(cls, style: str) -> "CommunicationStyle":
        return cls(
            primary=style,
            tone=style,
            formality_level=STYLE_FORMALITY.get(style.lower(), 7),
        )


class Personality(BaseModel):
    """Personality facet of the agent.

    ``traits`` accepts plain strings, which are expanded into described
    traits, and ``communication_style`` accepts either a style name or a
    full style object.
    """

    traits: list[PersonalityTrait] = Field(
        default_factory=lambda: [
            PersonalityTrait.from_name(t) for t in ("professional", "helpful", "patient")
        ]
    )
    communication_style: CommunicationStyle = Field(default_factory=CommunicationStyle)
    emotional_intelligence: Level = "high"
    adaptability: Level = "high"
    conflict_style: str = "collaborative"
    decision_style: str = "analytical"
    stress_response: str = "remain calm and focused"
    adaptability_rules: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ADAPTABILITY_RULES)
    )

    @field_validator("traits", mode="before")
    @classmethod
    def _expand_traits(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [
                PersonalityTrait.from_name(item) if isinstance(item, str) else item
                for item in value
            ]
        return value

    @field_validator("communication_style", mode="before")
    @classmethod
    def _expand_style(cls, value: Any) -> Any:
        if value is None:
            return CommunicationStyle()
        if isinstance(value, str):
            return CommunicationStyle.from_name(value)
        return value

    @property
    def tone(self) -> str:
        return self.communication_style.tone

    @property
    def formality_level(self) -> int:
        return self.communication_style.formality_level

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    def add_trait(self, trait: str | PersonalityTrait) -> None:
        if isinstance(trait, str):
            trait = PersonalityTrait.from_name(trait)
        if any(t.name == trait.name for t in self.traits):
            return
        self.traits.append(trait)

    def remove_trait(self, name: str) -> bool:
        before = len(self.traits)
        self.traits = [t for t in self.traits if t.name != name]
        return len(self.traits) < before

    def update_communication_style(self, style: str | dict[str, Any]) -> None:
        if isinstance(style, str):
            self.communication_style = CommunicationStyle.from_name(style)
        else:
            merged = self.communication_style.model_dump()
            merged.update(style)
            self.communication_style = CommunicationStyle(**merged)

    def set_formality_level(self, level: int) -> None:
        clamped = max(1, min(10, level))
        self.communication_style = self.communication_style.model_copy(
            update={"formality_level": clamped}
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def get_error_message(self, channel: Channel | str | None) -> str:
        """Static fallback text shown when the AI cannot produce a reply."""
        if channel == Channel.CALL:
            return self._call_error_message()
        if channel == Channel.SMS:
            return self._sms_error_message()
        if channel == Channel.EMAIL:
            return self._email_error_message()
        return (
            "I apologize, but I'm experiencing technical difficulties. Please try "
            "again in a moment, or contact support if the issue persists."
        )

    def _call_error_message(self) -> str:
        if self.formality_level >= 8:
            return (
                "I apologize, but I'm experiencing a technical difficulty at the "
                "moment. Would you mind if I have someone call you back shortly?"
            )
        if self.formality_level <= 4:
            return (
                "Oops! I'm having a bit of trouble right now. Can I have someone "
                "get back to you in a few minutes?"
            )
        return (
            "I'm sorry, but I'm experiencing a technical issue. Let me have someone "
            "reach out to you shortly to help."
        )

    def _sms_error_message(self) -> str:
        if self.formality_level >= 8:
            return (
                "We apologize for the inconvenience. Our system is experiencing "
                "difficulties. A team member will contact you shortly."
            )
        return "Sorry, we're having technical issues. Someone will text you back soon!"

    def _email_error_message(self) -> str:
        signature = "Customer Service Team" if self.tone == "formal" else "The Team"
        return (
            "Dear Valued Customer,\n\n"
            "We apologize for any inconvenience. Our system is currently "
            "experiencing technical difficulties.\n\n"
            "A member of our team will reach out to you shortly to assist with "
            "your request.\n\n"
            "Thank you for your patience and understanding.\n\n"
            f"Best regards,\n{signature}"
        )

    def get_description(self) -> str:
        lines = ["## Personality", "", "### Core Traits"]
        lines.extend(f"- **{t.name}**: {t.description}" for t in self.traits)
        lines += [
            "",
            "### Communication Style",
            f"- Primary Style: {self.communication_style.primary}",
            f"- Tone: {self.tone}",
            f"- Formality Level: {self.formality_level}/10",
            "",
            "### Emotional Intelligence",
        ]
        ei = f"You have {self.emotional_intelligence} emotional intelligence."
        if self.emotional_intelligence == "high":
            ei += (
                " You are highly attuned to emotional cues and respond with "
                "appropriate empathy."
            )
        lines += [ei, "", "### Adaptability", f"Your adaptability level is {self.adaptability}."]
        lines.extend(f"- {rule}" for rule in self.adaptability_rules)
        lines += [
            "",
            "### Behavioral Patterns",
            f"- Conflict Resolution: {self.conflict_style}",
            f"- Decision Making: {self.decision_style}",
            f"- Under Stress: {self.stress_response}",
        ]
        return "\n".join(lines)
