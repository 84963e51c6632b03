"""Who the agent is: name, role, authority and professional background."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

DEFAULT_ESCALATION_RULES = [
    "Complex technical issues beyond my expertise",
    "Requests requiring management approval",
    "Complaints or sensitive situations",
]


class Identity(BaseModel):
    """Identity facet of the agent."""

    name: str
    role: str
    title: str | None = None
    backstory: str | None = None
    department: str | None = None
    reports_to: str | None = None
    authority_level: Literal["low", "medium", "high"] = "medium"
    escalation_rules: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ESCALATION_RULES)
    )
    years_of_experience: int = Field(default=5, ge=0)
    specializations: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_defaults(self) -> "Identity":
        if not self.title:
            self.title = self.role
        if not self.backstory:
            self.backstory = f"I am {self.name}, working as {self.role}."
        return self

    def summary(self) -> str:
        return f"{self.name} ({self.title})"

    def get_description(self) -> str:
        description = f"You are {self.name}, {self.title}."

        if self.backstory:
            description += f"\n\n{self.backstory}"
        if self.years_of_experience > 0:
            description += (
                f"\n\nYou have {self.years_of_experience} years of experience in this role."
            )
        if self.specializations:
            description += (
                f"\n\nYour specializations include: {', '.join(self.specializations)}."
            )
        if self.certifications:
            description += (
                "\n\nYou hold the following certifications: "
                f"{', '.join(self.certifications)}."
            )
        if self.department:
            description += f"\n\nYou work in the {self.department} department"
            if self.reports_to:
                description += f", reporting to {self.reports_to}"
            description += "."

        description += f"\n\nYour authority level is {self.authority_level}."

        if self.escalation_rules:
            rules = "\n".join(f"- {rule}" for rule in self.escalation_rules)
            description += f"\n\nYou should escalate to a human supervisor when:\n{rules}"

        return description

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    def update_role(self, role: str) -> None:
        # Title follows the role when it was derived from it
        if self.title == self.role:
            self.title = role
        self.role = role

    def set_years_of_experience(self, years: int) -> None:
        self.years_of_experience = max(0, years)

    def add_escalation_rule(self, rule: str) -> None:
        if rule not in self.escalation_rules:
            self.escalation_rules.append(rule)

    def remove_escalation_rule(self, rule: str) -> None:
        self.escalation_rules = [r for r in self.escalation_rules if r != rule]

    def add_specialization(self, specialization: str) -> None:
        if specialization not in self.specializations:
            self.specializations.append(specialization)

    def remove_specialization(self, specialization: str) -> None:
        self.specializations = [s for s in self.specializations if s != specialization]

    def add_certification(self, certification: str) -> None:
        if certification not in self.certifications:
            self.certifications.append(certification)

    def remove_certification(self, certification: str) -> None:
        self.certifications = [c for c in self.certifications if c != certification]
