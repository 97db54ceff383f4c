"""Tests for the HTTP surface."""

import httpx
import pytest
import pytest_asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from ledgercast.forecast import routes as forecast_routes
from ledgercast.forecast.engine import ForecastRunResult
from ledgercast.forecast.errors import InvalidHorizonError, SourceUnavailableError
from ledgercast.forecast.simulation import simulate
from ledgercast.forecast.types import CashPosition, ForecastFacts, Precision
from ledgercast.main import app
from ledgercast.tax import routes as tax_routes
from ledgercast.tax.types import TaxKind, TaxObligation


@pytest.fixture
def run_result(today):
    facts = ForecastFacts(today=today)
    return ForecastRunResult(
        days=simulate(CashPosition(cash=Decimal("800")), facts, 3),
        from_cache=False,
        persisted=True,
    )


@pytest.fixture
def fake_engine(run_result):
    engine = MagicMock()
    engine.get_or_compute = AsyncMock(return_value=run_result)
    engine.regenerate = AsyncMock(return_value=run_result)
    app.dependency_overrides[forecast_routes.get_forecast_engine] = lambda: engine
    yield engine
    app.dependency_overrides.clear()


@pytest.fixture
def fake_calculator():
    calculator = MagicMock()
    app.dependency_overrides[tax_routes.get_tax_calculator] = lambda: calculator
    yield calculator
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestForecastRoutes:

    @pytest.mark.asyncio
    async def test_get_forecast(self, client, fake_engine, today):
        response = await client.get("/api/forecast", params={"days": 3})

        assert response.status_code == 200
        data = response.json()
        assert len(data["forecast"]) == 3
        assert data["forecast"][0]["date"] == today.isoformat()
        assert data["forecast"][0]["scenarios"] is None
        assert data["summary"]["days"] == 3
        assert Decimal(data["summary"]["lowest_balance"]) == Decimal("800")
        assert data["summary"]["critical_alerts"] == 3
        assert data["meta"]["persisted"] is True
        assert data["meta"]["position_precision"] == "PRECISE"
        fake_engine.get_or_compute.assert_awaited_once_with(3)

    @pytest.mark.asyncio
    async def test_get_forecast_with_scenarios(self, client, fake_engine):
        response = await client.get("/api/forecast", params={"days": 3, "scenarios": "true"})

        scenarios = response.json()["forecast"][0]["scenarios"]
        assert Decimal(scenarios["best_case"]) == Decimal("800")

    @pytest.mark.asyncio
    async def test_invalid_horizon_is_422(self, client, fake_engine):
        fake_engine.get_or_compute = AsyncMock(side_effect=InvalidHorizonError(0))

        response = await client.get("/api/forecast", params={"days": 0})

        assert response.status_code == 422
        assert "horizon_days" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_post_generate(self, client, fake_engine):
        response = await client.post("/api/forecast", json={"days": 3})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "days_generated": 3,
            "message": "Generated 3-day forecast",
            "persisted": True,
        }
        fake_engine.regenerate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_post_regenerate(self, client, fake_engine, run_result):
        run_result.persisted = False
        run_result.persistence_error = "timed out"

        response = await client.post("/api/forecast", json={"days": 3, "regenerate": True})

        data = response.json()
        assert data["persisted"] is False
        assert "timed out" in data["message"]
        fake_engine.regenerate.assert_awaited_once_with(3)

    @pytest.mark.asyncio
    async def test_post_rejects_zero_days(self, client, fake_engine):
        response = await client.post("/api/forecast", json={"days": 0})

        assert response.status_code == 422
        fake_engine.get_or_compute.assert_not_awaited()


class TestSummary:

    def test_lowest_point_and_totals(self, run_result):
        summary = forecast_routes.summarize(run_result.days)

        assert summary.lowest_balance_date == run_result.days[0].date
        assert summary.total_inflows == Decimal("0")
        assert summary.average_confidence == Decimal("1.00")

    def test_empty(self):
        summary = forecast_routes.summarize([])

        assert summary.days == 0
        assert summary.lowest_balance_date is None


class TestTaxRoutes:

    @pytest.mark.asyncio
    async def test_obligations(self, client, fake_calculator, today):
        fake_calculator.calculate_upcoming_obligations = AsyncMock(return_value=[
            TaxObligation(
                kind=TaxKind.PAYROLL,
                due_date=today + timedelta(days=12),
                amount=Decimal("3000.00"),
                reference="PAYE/NI Dec 2025",
                precision=Precision.ESTIMATED,
            ),
        ])

        response = await client.get("/api/tax/obligations", params={"days": 30})

        assert response.status_code == 200
        data = response.json()
        assert data["degraded"] is False
        assert data["obligations"][0]["kind"] == "PAYROLL"
        assert data["obligations"][0]["precision"] == "ESTIMATED"
        assert Decimal(data["total_amount"]) == Decimal("3000")

    @pytest.mark.asyncio
    async def test_store_unavailable_is_degraded(self, client, fake_calculator):
        fake_calculator.calculate_upcoming_obligations = AsyncMock(
            side_effect=SourceUnavailableError("tax_obligations", ConnectionError("refused"))
        )

        response = await client.get("/api/tax/obligations")

        assert response.status_code == 200
        assert response.json()["degraded"] is True
        assert response.json()["obligations"] == []

    @pytest.mark.asyncio
    async def test_invalid_horizon_is_422(self, client, fake_calculator):
        response = await client.get("/api/tax/obligations", params={"days": -3})

        assert response.status_code == 422


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.json() == {"status": "healthy"}
