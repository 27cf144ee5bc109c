"""
Clause interceptors - rewrite generated clauses before SQL assembly

- Base classes: ClauseInterceptor, InterceptorPipeline
- Rewrite rules: AggregateClauseRewriter

Example:
    ```python
    from aggquery.interceptors import AggregateClauseRewriter, InterceptorPipeline

    pipeline = InterceptorPipeline([AggregateClauseRewriter(catalog)])
    clauses = pipeline.apply(clauses, query)
    print(pipeline.get_summary())
    ```
"""

from aggquery.interceptors.aggregate import (
    AggregateClauseRewriter,
    build_aggregate_clause,
    extract_groupby_names,
    validate_aggregate_fields,
)
from aggquery.interceptors.base import ClauseInterceptor, InterceptorPipeline

__all__ = [
    "ClauseInterceptor",
    "InterceptorPipeline",
    "AggregateClauseRewriter",
    "build_aggregate_clause",
    "extract_groupby_names",
    "validate_aggregate_fields",
]
