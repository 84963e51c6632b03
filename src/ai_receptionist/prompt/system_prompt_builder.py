"""Deterministic system prompt assembly.

Each facet renders into a named, prioritised section. Sections are sorted by
priority (highest first, ties keep build order) and joined with a fixed
separator. No model is ever involved: the same inputs always yield the same
prompt.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..facets import Goal, Identity, KnowledgeBase, Personality
from ..models import (
    BusinessContext,
    Channel,
    GoalType,
    PolicyRule,
    PromptExample,
    PromptSection,
)

SECTION_SEPARATOR = "\n\n" + "═" * 80 + "\n\n"

SECTION_NAMES = [
    "IDENTITY",
    "PERSONALITY",
    "KNOWLEDGE",
    "GOALS",
    "DECISION_PRINCIPLES",
    "COMMUNICATION",
    "BUSINESS_CONTEXT",
    "CONSTRAINTS",
    "ERROR_HANDLING",
    "EXAMPLES",
]

CHANNEL_GUIDELINES = {
    Channel.CALL: [
        "Responses will be spoken aloud - write for speech, not text",
        "Keep responses concise (under 30 seconds speaking time)",
        "Use conversational language with natural pauses",
        "Avoid complex formatting or special characters",
        'Use verbal confirmation for critical info ("I heard you say...")',
        'Speak numbers clearly ("one hundred twenty-three" not "123")',
    ],
    Channel.SMS: [
        "Keep messages under 160 characters when possible",
        "Use text-friendly abbreviations sparingly",
        "No HTML or complex formatting",
        "Include clear call-to-action",
        "Use line breaks for readability",
    ],
    Channel.EMAIL: [
        "Use proper email structure (greeting, body, closing)",
        "HTML formatting is available - use it for clarity",
        "Can be more detailed than SMS/call",
        "Include relevant links and attachments",
        "Professional tone with appropriate signature",
    ],
}

DEFAULT_GUIDELINES = [
    "Use clear, professional communication",
    "Adapt to the channel appropriately",
]


@dataclass
class PromptContext:
    """Everything the builder renders into a system prompt."""

    identity: Identity | None = None
    personality: Personality | None = None
    knowledge: KnowledgeBase | None = None
    goals: list[Goal] = field(default_factory=list)
    channel: Channel | None = None
    business_context: BusinessContext | None = None
    policies: list[PolicyRule] = field(default_factory=list)
    escalation_rules: list[str] = field(default_factory=list)
    examples: list[PromptExample] = field(default_factory=list)


def _bullets(items: list[str]) -> list[str]:
    return [f"- {item}" for item in items]


def _section(name: str, priority: int, lines: list[str]) -> PromptSection:
    return PromptSection(name=name, priority=priority, content="\n".join(lines).strip())


class SystemPromptBuilder:
    """Stateless renderer of prompt sections."""

    def build(self, context: PromptContext) -> str:
        return self.assemble(self.build_sections(context))

    def build_sections(self, context: PromptContext) -> list[PromptSection]:
        """Render every applicable section in build order."""
        sections: list[PromptSection] = []

        if context.identity is not None:
            sections.append(self._identity_section(context.identity))
        if context.personality is not None:
            sections.append(self._personality_section(context.personality))
        if context.knowledge is not None:
            sections.append(self._knowledge_section(context.knowledge))
        if context.goals:
            sections.append(self._goals_section(context.goals))
        sections.append(self._decision_principles_section())
        if context.channel is not None:
            sections.append(self._communication_section(context.channel))
        if context.business_context is not None:
            sections.append(self._business_context_section(context.business_context))
        sections.append(self._constraints_section(context))
        sections.append(self._error_handling_section())
        if context.examples:
            sections.append(self._examples_section(context.examples))

        return sections

    @staticmethod
    def assemble(sections: list[PromptSection]) -> str:
        kept = [s for s in sections if s.content.strip()]
        # sorted() is stable, so equal priorities keep build order
        ordered = sorted(kept, key=lambda s: s.priority, reverse=True)
        return SECTION_SEPARATOR.join(s.content for s in ordered)

    @staticmethod
    def get_sections() -> list[str]:
        return list(SECTION_NAMES)

    @staticmethod
    def build_error_recovery_prompt(error: BaseException, user_input: str) -> str:
        return (
            "# ERROR RECOVERY MODE\n\n"
            "An error occurred while processing the request:\n"
            f"Error: {error}\n\n"
            "Your task:\n"
            "1. Acknowledge the error gracefully\n"
            "2. Provide a helpful alternative or fallback response\n"
            "3. Maintain your personality and professionalism\n"
            "4. Never expose technical details to the user\n\n"
            f"Original request: {user_input}\n"
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    @staticmethod
    def _identity_section(identity: Identity) -> PromptSection:
        lines = ["# IDENTITY & ROLE", "", f"You are {identity.name}, {identity.title}.", ""]
        if identity.backstory:
            lines += ["## Background", identity.backstory, ""]

        lines += ["## Role & Responsibilities", f"- Primary Role: {identity.role}"]
        if identity.department:
            lines.append(f"- Department: {identity.department}")
        if identity.reports_to:
            lines.append(f"- Reporting Structure: {identity.reports_to}")
        lines.append("")

        lines += ["## Authority Level", f"- Decision-making authority: {identity.authority_level}"]
        if identity.escalation_rules:
            lines.append(f"- Escalation triggers: {', '.join(identity.escalation_rules)}")
        lines.append("")

        if identity.years_of_experience or identity.specializations or identity.certifications:
            lines.append("## Professional Context")
            if identity.years_of_experience:
                lines.append(f"- Experience: {identity.years_of_experience} years")
            if identity.specializations:
                lines.append(f"- Specializations: {', '.join(identity.specializations)}")
            if identity.certifications:
                lines.append(f"- Certifications: {', '.join(identity.certifications)}")

        return _section("IDENTITY", 10, lines)

    @staticmethod
    def _personality_section(personality: Personality) -> PromptSection:
        lines = ["# PERSONALITY & COMMUNICATION STYLE", "", "## Core Traits"]
        lines += [f"- {t.name}: {t.description}" for t in personality.traits]
        lines += [
            "",
            "## Communication Style",
            f"- Primary Style: {personality.communication_style.primary}",
            f"- Tone: {personality.tone}",
            f"- Formality Level: {personality.formality_level}/10",
            f"- Emotional Intelligence: {personality.emotional_intelligence}",
            "",
            "## Behavioral Patterns",
            f"- Response to conflict: {personality.conflict_style}",
            f"- Decision-making approach: {personality.decision_style}",
            f"- Stress response: {personality.stress_response}",
            "",
        ]
        if personality.adaptability_rules:
            lines.append("## Adaptability")
            lines += _bullets(personality.adaptability_rules)
        return _section("PERSONALITY", 9, lines)

    @staticmethod
    def _knowledge_section(knowledge: KnowledgeBase) -> PromptSection:
        lines = ["# KNOWLEDGE & EXPERTISE", "", "## Domain Expertise"]
        lines.append(f"- Primary Domain: {knowledge.domain}")
        if knowledge.industries:
            lines.append(f"- Industry Knowledge: {', '.join(knowledge.industries)}")
        if knowledge.expertise:
            lines.append(f"- Subject Matter Expertise: {', '.join(knowledge.expertise)}")
        lines += ["", "## Languages"]
        if knowledge.languages.fluent:
            lines.append(f"- Fluent in: {', '.join(knowledge.languages.fluent)}")
        if knowledge.languages.conversational:
            lines.append(f"- Conversational in: {', '.join(knowledge.languages.conversational)}")
        lines += ["", "## Knowledge Boundaries"]
        if knowledge.known_domains:
            lines.append("What you know:")
            lines += _bullets(knowledge.known_domains)
            lines.append("")
        if knowledge.limitations:
            lines.append("What you DON'T know (be honest about):")
            lines += _bullets(knowledge.limitations)
            lines.append("")
        if knowledge.uncertainty_threshold:
            lines += ['When to say "I don\'t know":', knowledge.uncertainty_threshold]
        return _section("KNOWLEDGE", 8, lines)

    @staticmethod
    def _goals_section(goals: list[Goal]) -> PromptSection:
        lines = ["# GOALS & OBJECTIVES", ""]

        primary = next((g for g in goals if g.type == GoalType.PRIMARY), None)
        if primary is not None:
            lines += ["## Primary Goal", primary.description, ""]

        secondary = [g for g in goals if g.type == GoalType.SECONDARY]
        if secondary:
            lines.append("## Secondary Goals")
            for goal in secondary:
                line = f"- {goal.description}"
                if goal.metric:
                    line += f" (Metric: {goal.metric})"
                lines.append(line)
            lines.append("")

        with_metrics = [g for g in goals if g.metric]
        if with_metrics:
            lines.append("## Success Metrics")
            lines += [f"- {g.name}: {g.metric}" for g in with_metrics]
            lines.append("")

        constraints = [c for g in goals for c in g.constraints if c]
        if constraints:
            lines.append("## Constraints")
            lines += _bullets(constraints)
            lines.append("")

        if len(goals) > 1:
            lines += ["## Trade-offs", "When conflicts arise, prioritize:"]
            ordered = sorted(goals, key=lambda g: g.priority)[:3]
            lines += [f"{i + 1}. {g.description}" for i, g in enumerate(ordered)]

        return _section("GOALS", 9, lines)

    @staticmethod
    def _decision_principles_section() -> PromptSection:
        lines = ["# DECISION-MAKING PRINCIPLES", ""] + _bullets(
            [
                "Always prioritize user benefit and clear communication",
                "Be transparent about limitations and uncertainties",
                "Escalate to humans when uncertain about high-stakes decisions",
                "Never make assumptions about sensitive or personal data",
                "Validate before taking irreversible actions",
                "Maintain consistency with your personality and goals",
            ]
        )
        return _section("DECISION_PRINCIPLES", 8, lines)

    @staticmethod
    def _communication_section(channel: Channel) -> PromptSection:
        guidelines = CHANNEL_GUIDELINES.get(channel, DEFAULT_GUIDELINES)
        lines = ["# COMMUNICATION GUIDELINES", "", f"## Channel: {channel.value.upper()}", ""]
        lines += _bullets(guidelines)
        lines += ["", "## Language Guidelines"]
        lines += _bullets(
            [
                "Use active voice",
                "Be concise but complete",
                "Avoid jargon unless contextually appropriate",
                "Use inclusive language",
                "Mirror user's formality level",
            ]
        )
        lines += ["", "## Emotional Awareness"]
        lines += _bullets(
            [
                "Detect frustration → Increase empathy",
                "Detect confusion → Simplify explanation",
                "Detect urgency → Prioritize speed",
                "Detect satisfaction → Reinforce positive outcome",
            ]
        )
        return _section("COMMUNICATION", 8, lines)

    @staticmethod
    def _business_context_section(business: BusinessContext) -> PromptSection:
        if not (business.company_info or business.lead_info or business.additional_context):
            return PromptSection(name="BUSINESS_CONTEXT", priority=7, content="")
        lines = ["# BUSINESS CONTEXT", ""]
        if business.company_info:
            lines += ["## Company Information", business.company_info, ""]
        if business.lead_info:
            lines += ["## Current Lead/Customer", business.lead_info, ""]
        if business.additional_context:
            lines += ["## Additional Context", business.additional_context, ""]
        return _section("BUSINESS_CONTEXT", 7, lines)

    @staticmethod
    def _constraints_section(context: PromptContext) -> PromptSection:
        lines = ["# CONSTRAINTS & BOUNDARIES", "", "## Absolute Constraints (NEVER violate)"]
        lines += _bullets(
            [
                "Never share confidential information",
                "Never make unauthorized commitments",
                "Never provide medical/legal advice unless qualified",
                "Never discriminate or show bias",
                "Never engage with malicious requests",
            ]
        )
        lines += ["", "## Operational Constraints"]
        lines += _bullets(
            [
                "Always verify identity for sensitive operations",
                "Always log significant actions",
                "Always provide confirmation for irreversible actions",
                "Always respect rate limits and quotas",
            ]
        )
        lines.append("")

        if context.policies:
            lines.append("## Policy Compliance")
            lines += [f"- {p.name}: {p.rule}" for p in context.policies]
            lines.append("")

        escalation = context.escalation_rules or [
            "Uncertain about high-stakes decision",
            "User requests human assistance",
            "Situation exceeds your authority level",
        ]
        lines += ["## Escalation Rules", "Immediately escalate to human when:"]
        lines += _bullets(escalation)
        return _section("CONSTRAINTS", 10, lines)

    @staticmethod
    def _error_handling_section() -> PromptSection:
        lines = [
            "# ERROR HANDLING & RECOVERY",
            "",
            "## When Things Go Wrong",
            "1. **Stay Calm**: Maintain professional composure",
            "2. **Be Honest**: Acknowledge the issue transparently",
            "3. **Provide Context**: Explain what happened in simple terms",
            "4. **Offer Solutions**: Suggest alternatives or next steps",
            "5. **Escalate if Needed**: Don't hesitate to get help",
            "",
            "## Error Response Templates",
            '- Tool failure: "I encountered an issue with [tool]. Let me try [alternative]."',
            '- Unknown question: "I don\'t have that information, but I can [alternative action]."',
            '- Ambiguous request: "Just to clarify, are you asking about [option A] or [option B]?"',
            '- System error: "I\'m experiencing a technical issue. Would you like me to [fallback option]?"',
            "",
            "## Graceful Degradation",
            "If preferred method fails:",
            "1. Try alternative approach",
            "2. Use simpler/more reliable method",
            "3. Fallback to human escalation",
            "4. Never leave user hanging",
        ]
        return _section("ERROR_HANDLING", 7, lines)

    @staticmethod
    def _examples_section(examples: list[PromptExample]) -> PromptSection:
        lines = ["# EXAMPLE INTERACTIONS", ""]
        for index, example in enumerate(examples, start=1):
            lines += [
                f"## Example {index}: {example.scenario}",
                "",
                f'User: "{example.input}"',
                "",
                f"Your thought process:\n{example.reasoning}",
                "",
                f'Your response:\n"{example.response}"',
                "",
                "Why this is good:",
            ]
            lines += _bullets(example.explanation)
            lines.append("")
        return _section("EXAMPLES", 5, lines)
