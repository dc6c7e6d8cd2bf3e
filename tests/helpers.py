"""Shared builders for mocked database results and quote rows."""
from typing import Any, List, Optional
from unittest.mock import MagicMock
from uuid import UUID, uuid4

from sqlalchemy.dialects import postgresql

CURRENCY_EUR = UUID("b7d2554b0ce847cd82f3ac9bd1c0dfca")


def make_result(rows: Optional[List[tuple]] = None, rowcount: int = 1, scalars: Optional[list] = None):
    """Build a mock for the object returned by ``await session.execute(...)``."""
    result = MagicMock()
    result.all.return_value = list(rows or [])
    result.rowcount = rowcount
    result.scalars.return_value.all.return_value = list(scalars or [])
    return result


def quote_row(
    canonical_id: UUID,
    variant_id: UUID,
    rule_id: UUID,
    gross: Any,
    currency_id: Optional[UUID] = None,
    quote_id: Optional[UUID] = None,
    **price_fields: Any,
) -> tuple:
    """Row shaped like the indexer's quote query result."""
    return (
        canonical_id,
        quote_id or uuid4(),
        variant_id,
        rule_id,
        currency_id or CURRENCY_EUR,
        {"gross": gross, **price_fields},
    )


def compiled_params(statement) -> dict:
    """Bound parameters of a statement compiled for PostgreSQL."""
    return statement.compile(dialect=postgresql.dialect()).params


def compiled_sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))
