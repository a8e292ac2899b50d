"""
Economic simulation engine.

Two passes per turn:

    compute_ledger(state) -> EconomicReport    (pure)
    apply_ledger(report, state) -> int         (treasury, floored)
    process_macro(state) -> MacroReport        (GDP, inflation, unemployment,
                                                trade balance, sector shares,
                                                five-year plan, crises)

Every bound is enforced by clamping, never by raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..config import DEFAULT_BALANCE
from ..state.schema import (
    EconomicCrisisType,
    EconomicSystemType,
    EconomyState,
    GovernmentType,
    PoliticalBloc,
    RegionType,
    TreatyType,
)
from ..state.schemas.reports import EconomicReport, MacroReport
from ..tools.dice import Dice

if TYPE_CHECKING:
    from ..state.schema import GameState

logger = logging.getLogger(__name__)


# ─── Configuration ───────────────────────────────────────────

@dataclass(frozen=True)
class EconomicSystemProfile:
    """Baseline constants for an economic system."""
    base_growth: float
    inflation_tendency: int
    inequality: int
    state_control: int
    volatility: int
    trade_openness: int


ECONOMIC_SYSTEMS: dict[EconomicSystemType, EconomicSystemProfile] = {
    EconomicSystemType.COMMAND_ECONOMY: EconomicSystemProfile(3.0, 10, 20, 95, 15, 20),
    EconomicSystemType.MARKET_SOCIALISM: EconomicSystemProfile(5.0, 25, 30, 70, 25, 50),
    EconomicSystemType.MIXED_ECONOMY: EconomicSystemProfile(4.0, 35, 40, 45, 40, 65),
    EconomicSystemType.FREE_MARKET: EconomicSystemProfile(4.5, 45, 55, 20, 60, 80),
    EconomicSystemType.CRONY_CAPITALISM: EconomicSystemProfile(2.0, 55, 65, 60, 50, 35),
}


class PlanPhase(str, Enum):
    PLANNING = "planning"
    LAUNCHING = "launching"
    ACCELERATING = "accelerating"
    CONSOLIDATING = "consolidating"
    COMPLETING = "completing"


PLAN_GROWTH_MODIFIER: dict[PlanPhase, float] = {
    PlanPhase.PLANNING: 0.8,
    PlanPhase.LAUNCHING: 1.0,
    PlanPhase.ACCELERATING: 1.3,
    PlanPhase.CONSOLIDATING: 1.1,
    PlanPhase.COMPLETING: 0.9,
}


def plan_phase(year: int) -> PlanPhase:
    if year == 1:
        return PlanPhase.LAUNCHING
    if year in (2, 3):
        return PlanPhase.ACCELERATING
    if year == 4:
        return PlanPhase.CONSOLIDATING
    if year == 5:
        return PlanPhase.COMPLETING
    return PlanPhase.LAUNCHING


# slot -> option -> GDP growth term
GROWTH_POLICY_TERMS: dict[str, dict[str, int]] = {
    "economy_enterprise_management": {
        "enterprise_central_quotas": -2,
        "enterprise_regional_flexibility": 1,
        "enterprise_manager_autonomy": 3,
    },
    "economy_private_enterprise": {
        "private_prohibited": -3,
        "private_small_plots": 1,
        "private_licensed_businesses": 4,
    },
    "economy_foreign_trade": {
        "trade_state_monopoly": -1,
        "trade_licensed_companies": 2,
        "trade_joint_ventures": 3,
    },
    "economy_price_controls": {
        "price_full_control": -2,
        "price_strategic_only": 0,
        "price_market_signals": 2,
    },
}

INFLATION_PRICE_TERMS: dict[str, int] = {
    "price_full_control": -3,
    "price_strategic_only": -1,
    "price_market_signals": 2,
}

# Applied in order through apply_stat
CRISIS_EFFECTS: dict[EconomicCrisisType, dict[str, int]] = {
    EconomicCrisisType.SHORTAGE: {"popular_support": -10, "stability": -3},
    EconomicCrisisType.HYPERINFLATION: {"stability": -12, "popular_support": -15, "treasury": -10},
    EconomicCrisisType.BANK_RUN: {"treasury": -20, "elite_loyalty": -10, "stability": -5},
    EconomicCrisisType.HARVEST_FAILURE: {"popular_support": -15, "stability": -8, "food_supply": -15},
    EconomicCrisisType.INDUSTRIAL_COLLAPSE: {"treasury": -15, "industrial_output": -10, "stability": -5},
    EconomicCrisisType.TRADE_BLOCKADE: {"treasury": -12, "industrial_output": -5},
    EconomicCrisisType.LABOR_UNREST: {"stability": -10, "industrial_output": -8, "popular_support": 3},
    EconomicCrisisType.BLACK_MARKET: {"stability": -5, "treasury": -8},
}


class EconomicHealth(str, Enum):
    CRISIS = "crisis"
    DECLINING = "declining"
    STAGNANT = "stagnant"
    STABLE = "stable"
    GROWING = "growing"


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _option_of(state: "GameState", slot_id: str) -> str | None:
    slot = state.policy_slot(slot_id)
    return slot.current_option_id if slot else None


# ─── Engine ──────────────────────────────────────────────────

class EconomicEngine:
    """
    Treasury ledger and macro indicators.

    Usage:
        engine = EconomicEngine(dice=Dice(7))
        report = engine.compute_ledger(state)
        engine.apply_ledger(report, state)
        macro = engine.process_macro(state)
    """

    def __init__(self, balance: dict | None = None, dice: Dice | None = None):
        self.config = (balance or DEFAULT_BALANCE)["economy"]
        self.dice = dice or Dice()

    # ─── Ledger ─────────────────────────────────────────────

    def compute_ledger(self, state: "GameState") -> EconomicReport:
        """Build the turn's income and expense ledger without touching state."""
        return EconomicReport(
            turn=state.turn_number,
            domestic_production=self._domestic_production(state),
            foreign_trade=self._foreign_trade(state),
            foreign_aid=self._foreign_aid(state),
            resource_extraction=self._resource_extraction(state),
            trade_agreement_bonus=self._trade_agreement_bonus(state),
            military=self._military(state),
            social=self._social(state),
            infrastructure=self._infrastructure(state),
            debt=self.config["soviet_debt"] if state.has_flag("soviet_debt") else 0,
            crisis_response=self._flag_costs(state, self.config["crisis_response"]),
            corruption=max(0, (100 - state.stats.stability) // 10),
            embargo_losses=self._embargo(state),
            war_costs=self._flag_costs(state, self.config["war_costs"]),
        )

    def apply_ledger(self, report: EconomicReport, state: "GameState") -> int:
        """
        Commit the ledger to the treasury.

        The treasury never ends below the configured floor.

        Returns:
            The treasury delta actually applied
        """
        floor = self.config["treasury_floor"]
        current = state.stats.treasury
        target = max(floor, current + report.net_change)
        applied = state.apply_stat("treasury", target - current)
        logger.debug(
            f"Turn {state.turn_number} ledger: income {report.total_income}, "
            f"expenses {report.total_expenses}, treasury {current} -> {state.stats.treasury}"
        )
        return applied

    def _domestic_production(self, state: "GameState") -> int:
        total = 0.0
        for region in state.regions:
            output = region.industrial_capacity / 5 + region.agricultural_output / 10
            loyalty_factor = 0.5 + (region.popular_loyalty / 100) * 0.5
            total += output * loyalty_factor
        return max(self.config["domestic_minimum"], int(total))

    def _foreign_trade(self, state: "GameState") -> int:
        total = 0.0
        for country in state.countries:
            rel = country.relationship_score
            if rel <= -60:
                continue
            if rel > 60:
                multiplier = 1.2
            elif rel > 30:
                multiplier = 1.0
            elif rel > -30:
                multiplier = 0.7
            else:
                multiplier = 0.4
            total += country.trade_volume * multiplier / 5
        return int(total)

    def _foreign_aid(self, state: "GameState") -> int:
        aid = 0
        socialist_governments = (GovernmentType.SOCIALIST_REPUBLIC, GovernmentType.COMMUNIST_STATE)
        for country in state.countries:
            if country.government_type not in socialist_governments:
                continue
            if country.relationship_score <= 30:
                continue
            base = country.economic_power // 20
            aid += base * (2 if country.relationship_score > 60 else 1)
        return aid

    def _resource_extraction(self, state: "GameState") -> int:
        table = self.config["resource_by_region"]
        return sum(table.get(region.region_type.value, 1) for region in state.regions)

    def _trade_agreement_bonus(self, state: "GameState") -> int:
        return sum(
            c.economic_power // 25
            for c in state.countries
            if c.has_treaty(TreatyType.TRADE_AGREEMENT)
        )

    def _military(self, state: "GameState") -> int:
        cost = self.config["military_base"]
        cost += 3 * sum(1 for c in state.countries if c.relationship_score < -60)
        loyalty = state.stats.military_loyalty
        if loyalty < 40:
            cost += (40 - loyalty) // 5
        if state.has_flag("at_war"):
            cost += 20
        return cost

    def _social(self, state: "GameState") -> int:
        cost = self.config["social_base"]
        support = state.stats.popular_support
        if support < 50:
            cost += (50 - support) // 10
        if state.stats.stability < 40:
            cost += 5
        return cost

    def _infrastructure(self, state: "GameState") -> int:
        industrial = sum(1 for r in state.regions if r.region_type == RegionType.INDUSTRIAL)
        return len(state.regions) * 2 + industrial * 3

    def _embargo(self, state: "GameState") -> int:
        return sum(
            c.economic_power // 20
            for c in state.countries
            if c.relationship_score < -60
        )

    def _flag_costs(self, state: "GameState", table: dict[str, int]) -> int:
        return sum(cost for flag, cost in table.items() if state.has_flag(flag))

    # ─── Projections ────────────────────────────────────────

    def project_treasury(self, state: "GameState", turns: int = 3) -> list[int]:
        """Treasury after each of the next N turns at the current net rate."""
        net = self.compute_ledger(state).net_change
        floor = self.config["treasury_floor"]
        current = state.stats.treasury
        return [max(floor, current + net * i) for i in range(1, turns + 1)]

    def economic_health(self, state: "GameState") -> EconomicHealth:
        if state.stats.treasury < 0:
            return EconomicHealth.CRISIS
        net = self.compute_ledger(state).net_change
        if net < -10:
            return EconomicHealth.DECLINING
        if net < 0:
            return EconomicHealth.STAGNANT
        if net < 10:
            return EconomicHealth.STABLE
        return EconomicHealth.GROWING

    # ─── Macro Indicators ───────────────────────────────────

    def process_macro(self, state: "GameState") -> MacroReport:
        """
        Advance GDP, inflation, unemployment, trade balance and sector shares.

        GDP is recorded to history before it moves, so growth rate and
        recession checks see the previous turns.
        """
        economy = state.economy
        economy.gdp_history.append(economy.gdp_index)

        growth = self.gdp_growth_delta(state)
        economy.gdp_index = _clamp(economy.gdp_index + growth, *EconomyState.GDP_BOUNDS)

        inflation = self.inflation_delta(state)
        economy.inflation_rate = _clamp(economy.inflation_rate + inflation, *EconomyState.INFLATION_BOUNDS)

        unemployment = self.unemployment_delta(state)
        economy.unemployment_rate = _clamp(
            economy.unemployment_rate + unemployment, *EconomyState.UNEMPLOYMENT_BOUNDS
        )

        economy.trade_balance = self.trade_balance(state)
        self.update_sector_shares(state)

        if state.turn_number > 0 and state.turn_number % self.config["plan_turns_per_year"] == 0:
            self._advance_plan_year(economy)

        crisis = self.detect_crisis(economy)
        economy.active_crisis = crisis
        applied: dict[str, int] = {}
        if crisis is not None:
            applied = self.apply_crisis(crisis, state)
            logger.info(f"Turn {state.turn_number}: economic crisis {crisis.value} {applied}")

        return MacroReport(
            gdp_growth_delta=growth,
            inflation_delta=inflation,
            unemployment_delta=unemployment,
            trade_balance=economy.trade_balance,
            agriculture_share=economy.agriculture_share,
            industry_share=economy.industry_share,
            services_share=economy.services_share,
            gdp_index=economy.gdp_index,
            inflation_rate=economy.inflation_rate,
            unemployment_rate=economy.unemployment_rate,
            five_year_plan=economy.five_year_plan,
            five_year_plan_year=economy.five_year_plan_year,
            plan_phase=plan_phase(economy.five_year_plan_year).value,
            crisis=crisis,
            crisis_effects=applied,
        )

    def gdp_growth_delta(self, state: "GameState") -> int:
        """GDP index change for this turn, clamped to [-10, 10]."""
        profile = ECONOMIC_SYSTEMS[state.economy.system_type]
        growth = profile.base_growth

        for slot_id, terms in GROWTH_POLICY_TERMS.items():
            option_id = _option_of(state, slot_id)
            if option_id:
                growth += terms.get(option_id, 0)

        if state.stats.stability < 40:
            growth -= 2
        if state.stats.popular_support < 30:
            growth -= 1

        agreements = sum(1 for c in state.countries if c.has_treaty(TreatyType.TRADE_AGREEMENT))
        growth += min(3, agreements)

        growth *= PLAN_GROWTH_MODIFIER[plan_phase(state.economy.five_year_plan_year)]
        return _clamp(int(growth), -10, 10)

    def inflation_delta(self, state: "GameState") -> int:
        """Inflation change: pull toward the system tendency, clamped to [-5, 5]."""
        profile = ECONOMIC_SYSTEMS[state.economy.system_type]
        delta = int((profile.inflation_tendency - state.economy.inflation_rate) / 20)

        option_id = _option_of(state, "economy_price_controls")
        if option_id:
            delta += INFLATION_PRICE_TERMS.get(option_id, 0)

        if state.stats.treasury < 0:
            delta += abs(state.stats.treasury) // 20
        if state.has_flag("at_war"):
            delta += 3

        delta += self.dice.spread(1)
        return _clamp(delta, -5, 5)

    def unemployment_delta(self, state: "GameState") -> int:
        """Unemployment change, clamped to [-3, 3]."""
        delta = 0
        growth_rate = state.economy.gdp_growth_rate
        if growth_rate > 3:
            delta -= 1
        elif growth_rate < 0:
            delta += 2

        option_id = _option_of(state, "economy_private_enterprise")
        if option_id == "private_prohibited":
            delta += 1
        elif option_id == "private_licensed_businesses":
            delta -= 2

        if sum(r.industrial_capacity for r in state.regions) > 50:
            delta -= 1

        delta += self.dice.spread(1)
        return _clamp(delta, -3, 3)

    def trade_balance(self, state: "GameState") -> int:
        """Trade balance from foreign relations and trade policy, clamped to [-30, 30]."""
        balance = 0
        for country in state.countries:
            rel = country.relationship_score
            if rel > -30:
                if country.has_treaty(TreatyType.TRADE_AGREEMENT):
                    balance += 3
                if country.political_bloc == PoliticalBloc.SOCIALIST and rel > 30:
                    balance += 2
            if rel < -60:
                balance -= country.economic_power // 30

        option_id = _option_of(state, "economy_foreign_trade")
        if option_id == "trade_state_monopoly":
            balance -= 3
        elif option_id == "trade_joint_ventures":
            balance += 5

        return _clamp(balance, -30, 30)

    def update_sector_shares(self, state: "GameState") -> None:
        """
        Shift and renormalise sector shares so they sum to exactly 100.

        Falls back to 20/45/35 when the raw total is not positive.
        """
        economy = state.economy
        agriculture = economy.agriculture_share
        industry = economy.industry_share
        services = economy.services_share

        if economy.system_type == EconomicSystemType.COMMAND_ECONOMY:
            industry += 1
            agriculture -= 1

        if _option_of(state, "economy_private_enterprise") == "private_licensed_businesses":
            services += 2
            industry -= 1
            agriculture -= 1

        total = agriculture + industry + services
        if total <= 0:
            economy.agriculture_share, economy.industry_share, economy.services_share = 20, 45, 35
            return

        economy.agriculture_share = _clamp(agriculture * 100 // total, 10, 40)
        economy.industry_share = _clamp(industry * 100 // total, 30, 60)
        economy.services_share = 100 - economy.agriculture_share - economy.industry_share

    def _advance_plan_year(self, economy: EconomyState) -> None:
        economy.five_year_plan_year += 1
        if economy.five_year_plan_year > 5:
            economy.five_year_plan += 1
            economy.five_year_plan_year = 1
            logger.info(f"Five-year plan {economy.five_year_plan} begins")

    # ─── Crises ─────────────────────────────────────────────

    def detect_crisis(self, economy: EconomyState) -> EconomicCrisisType | None:
        """First matching crisis condition, or None."""
        if economy.inflation_rate >= 50:
            return EconomicCrisisType.HYPERINFLATION
        if economy.unemployment_rate >= 20:
            return EconomicCrisisType.LABOR_UNREST
        if economy.gdp_index <= 70:
            return EconomicCrisisType.INDUSTRIAL_COLLAPSE
        if economy.trade_balance <= -20:
            return EconomicCrisisType.TRADE_BLOCKADE
        if economy.in_recession and economy.gdp_index <= 85:
            return EconomicCrisisType.SHORTAGE
        return None

    def apply_crisis(self, crisis: EconomicCrisisType, state: "GameState") -> dict[str, int]:
        """Apply a crisis penalty set. Returns the deltas actually applied."""
        return {
            stat: state.apply_stat(stat, delta)
            for stat, delta in CRISIS_EFFECTS[crisis].items()
        }
