from .base import Step
from .parse import ParseStep
from .translate import TranslateStep
from .validate import ValidateStep
from .write import WriteStep

__all__ = ["Step", "ParseStep", "TranslateStep", "ValidateStep", "WriteStep"]
