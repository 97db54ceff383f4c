"""Shared test fixtures and configuration for ledgercast tests."""
import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from ledgercast.forecast.types import CashPosition, Precision

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


def _result(rows=None, scalar=None, all_rows=None, scalar_one=None):
    """A stand-in for a SQLAlchemy Result."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows or []
    result.scalar.return_value = scalar
    result.scalar_one_or_none.return_value = scalar_one
    result.all.return_value = all_rows or []
    return result


def _session_factory(*results, error=None):
    """
    Session factory whose sessions return the given results in order.

    If error is set, every execute raises it instead. The shared session
    is exposed as factory.session.
    """
    session = AsyncMock()
    if error is not None:
        session.execute = AsyncMock(side_effect=error)
    else:
        session.execute = AsyncMock(side_effect=list(results))

    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=transaction)
    transaction.__aexit__ = AsyncMock(return_value=False)
    session.begin = MagicMock(return_value=transaction)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)

    factory = MagicMock(return_value=context)
    factory.session = session
    return factory


@pytest.fixture
def make_result():
    return _result


@pytest.fixture
def make_session_factory():
    return _session_factory


@pytest.fixture
def today():
    return date(2026, 1, 10)


@pytest.fixture
def position():
    """Cash position with 10,000 in the bank."""
    return CashPosition(
        cash=Decimal("10000"),
        accounts_receivable=Decimal("0"),
        accounts_payable=Decimal("0"),
        precision=Precision.PRECISE,
    )
