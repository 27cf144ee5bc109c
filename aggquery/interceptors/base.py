"""
Base classes for clause interceptors

Interceptors run after the row-query engine has generated its clauses and
before those clauses are assembled into SQL. Each interceptor implements a
single rewrite rule and is owned by the query instance it was created for.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

from aggquery.sql.clauses import ClauseSet

if TYPE_CHECKING:
    from aggquery.core.engine import RowQuery


class ClauseInterceptor(ABC):
    """
    Base class for all clause interceptors

    Interceptors are applied in a pipeline before query execution.
    """

    def __init__(self):
        """Initialize interceptor"""
        self.applied = False
        self.description = ""

    @abstractmethod
    def intercept(self, clauses: ClauseSet, query: "RowQuery") -> ClauseSet:
        """
        Rewrite the generated clauses

        Args:
            clauses: Clauses generated by the engine
            query: Query being built; exposes query_var_originals

        Returns:
            The clauses to use, modified or not

        Modifies:
            - self.applied: Marks the rewrite as applied
            - self.description: Describes what was rewritten
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """
        Get the name of this interceptor

        Returns:
            Human-readable interceptor name
        """
        pass

    def get_description(self) -> str:
        """
        Get description of what was rewritten

        Returns:
            Description string if applied, empty string otherwise
        """
        return self.description if self.applied else ""

    def was_applied(self) -> bool:
        """
        Check if the rewrite was applied

        Returns:
            True if the rewrite was applied
        """
        return self.applied


class InterceptorPipeline:
    """
    Pipeline that applies multiple interceptors in sequence

    Each interceptor receives the clauses returned by the previous one.
    """

    def __init__(self, interceptors: List[ClauseInterceptor]):
        """
        Initialize pipeline

        Args:
            interceptors: List of interceptors to apply in order
        """
        self.interceptors = list(interceptors)

    def add(self, interceptor: ClauseInterceptor) -> None:
        """Append an interceptor to the end of the pipeline"""
        self.interceptors.append(interceptor)

    def apply(self, clauses: ClauseSet, query: "RowQuery") -> ClauseSet:
        """
        Apply all interceptors in sequence

        Args:
            clauses: Clauses generated by the engine
            query: Query being built

        Returns:
            Final clauses
        """
        for interceptor in self.interceptors:
            clauses = interceptor.intercept(clauses, query)
        return clauses

    def get_applied_rewrites(self) -> List[str]:
        """
        Get list of rewrites that were applied

        Returns:
            List of rewrite descriptions
        """
        return [
            f"{i.get_name()}: {i.get_description()}"
            for i in self.interceptors
            if i.was_applied()
        ]

    def get_summary(self) -> str:
        """
        Get summary of all applied rewrites

        Returns:
            Human-readable summary
        """
        applied = self.get_applied_rewrites()

        if not applied:
            return "No clause rewrites applied"

        summary = "Clause rewrites applied:\n"
        for desc in applied:
            summary += f"  - {desc}\n"

        return summary.strip()
