"""
Ports (interfaces) for the collaborators the study session talks to.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import GradeResult, HistoryEntry, Term


class TermStore(ABC):
    """
    Port for persisting the whole term set and history.

    Implementations:
        - JsonFileStore: a single JSON document on disk.
    """

    @abstractmethod
    def load(self) -> tuple[list[Term], list[HistoryEntry]]:
        """
        Read every term and history entry.

        Returns:
            (terms, history) with history ordered most-recent first.
        """
        pass

    @abstractmethod
    def save(self, terms: list[Term], history: list[HistoryEntry]) -> None:
        """Overwrite the stored collections with the given ones."""
        pass


class QuestionService(ABC):
    @abstractmethod
    async def generate_question(self, term_name: str) -> str:
        """
        Produce one question testing understanding of ``term_name``.

        The description is intentionally withheld from the question generator.
        """
        pass


class GradingService(ABC):
    @abstractmethod
    async def grade_answer(
        self, term_name: str, description: str, question: str, user_answer: str
    ) -> GradeResult:
        """
        Grade ``user_answer`` against the term's description.

        Raises:
            GradingServiceError: transport failure or a score outside 0..100.
        """
        pass


class ImageToTextService(ABC):
    @abstractmethod
    async def recognize(self, image: bytes, mime_type: str = "image/png") -> str:
        """Extract the text shown in an image."""
        pass
