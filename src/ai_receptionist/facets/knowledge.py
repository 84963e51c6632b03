"""What the agent knows and where its knowledge ends."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_LIMITATIONS = [
    "Information outside my domain of expertise",
    "Real-time data I don't have access to",
    "Personal opinions or subjective matters",
]

DEFAULT_UNCERTAINTY = (
    'I will say "I don\'t know" when I\'m not confident in my answer or when '
    "the question is outside my expertise."
)


class LanguageConfig(BaseModel):
    fluent: list[str] = Field(default_factory=lambda: ["English"])
    conversational: list[str] = Field(default_factory=list)


class KnowledgeBase(BaseModel):
    """Knowledge facet of the agent."""

    domain: str
    expertise: list[str] = Field(default_factory=list)
    languages: LanguageConfig = Field(default_factory=LanguageConfig)
    certifications: list[str] = Field(default_factory=list)
    industries: list[str] = Field(default_factory=list)
    known_domains: list[str] = Field(default_factory=list)
    limitations: list[str] = Field(default_factory=lambda: list(DEFAULT_LIMITATIONS))
    uncertainty_threshold: str = DEFAULT_UNCERTAINTY

    @field_validator("languages", mode="before")
    @classmethod
    def _expand_languages(cls, value: Any) -> Any:
        # A bare list means "fluent in these"
        if value is None:
            return LanguageConfig()
        if isinstance(value, list):
            return LanguageConfig(fluent=value)
        return value

    @model_validator(mode="after")
    def _default_known_domains(self) -> "KnowledgeBase":
        if not self.known_domains:
            self.known_domains = [self.domain]
        return self

    def has_knowledge(self, domain: str) -> bool:
        needle = domain.lower()
        return any(needle in d.lower() for d in self.known_domains) or any(
            needle in e.lower() for e in self.expertise
        )

    def is_limited_knowledge(self, topic: str) -> bool:
        needle = topic.lower()
        return any(needle in limitation.lower() for limitation in self.limitations)

    def get_description(self) -> str:
        parts = [
            "## Knowledge & Expertise\n",
            "### Primary Domain",
            f"You are an expert in: **{self.domain}**\n",
        ]
        if self.expertise:
            parts.append("### Areas of Expertise")
            parts.append("\n".join(f"- {e}" for e in self.expertise) + "\n")
        if self.industries:
            parts.append("### Industry Knowledge")
            parts.append(f"You have knowledge of: {', '.join(self.industries)}\n")

        parts.append("### Languages")
        parts.append(f"- Fluent in: {', '.join(self.languages.fluent) or 'English'}")
        if self.languages.conversational:
            parts.append(f"- Conversational in: {', '.join(self.languages.conversational)}")
        parts.append("")

        if self.certifications:
            parts.append("### Certifications")
            parts.append("\n".join(f"- {c}" for c in self.certifications) + "\n")

        parts.append("### Knowledge Boundaries\n")
        parts.append("**What you know:**")
        parts.append("\n".join(f"- {d}" for d in self.known_domains) + "\n")
        parts.append("**What you DON'T know (be honest about):**")
        parts.append("\n".join(f"- {item}" for item in self.limitations) + "\n")
        parts.append('**When to say "I don\'t know":**')
        parts.append(self.uncertainty_threshold)
        return "\n".join(parts)
