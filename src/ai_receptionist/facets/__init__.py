"""Agent facets: identity, personality, knowledge and goals."""

from .goals import Goal, GoalConfig, GoalSystem
from .identity import Identity
from .knowledge import KnowledgeBase, LanguageConfig
from .personality import CommunicationStyle, Personality, PersonalityTrait

__all__ = [
    "CommunicationStyle",
    "Goal",
    "GoalConfig",
    "GoalSystem",
    "Identity",
    "KnowledgeBase",
    "LanguageConfig",
    "Personality",
    "PersonalityTrait",
]
