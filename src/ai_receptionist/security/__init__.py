from .input_validator import InputValidator, SecurityResult

__all__ = ["InputValidator", "SecurityResult"]
