"""Weight learning from ground truth."""

from .structured_learning import StructuredMaxMarginLearner, LearningHistory

__all__ = ['StructuredMaxMarginLearner', 'LearningHistory']
