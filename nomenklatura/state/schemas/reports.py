"""
Per-engine report schemas.

Each engine returns one of these for the turn. They are plain records; the
engine has already applied any state change they describe.
"""

from enum import Enum

from pydantic import BaseModel, Field

from ..schema import EconomicCrisisType, VoteResult, WorldEvent


class EconomicReport(BaseModel):
    """
    Treasury ledger for one turn.

    Computed from state without mutating it; apply_ledger commits it.
    """
    turn: int = 0

    # Income
    domestic_production: int = 0
    foreign_trade: int = 0
    foreign_aid: int = 0
    resource_extraction: int = 0
    trade_agreement_bonus: int = 0

    # Expenses (all non-negative)
    military: int = 0
    social: int = 0
    infrastructure: int = 0
    debt: int = 0
    crisis_response: int = 0
    corruption: int = 0
    embargo_losses: int = 0
    war_costs: int = 0

    @property
    def total_income(self) -> int:
        return (
            self.domestic_production
            + self.foreign_trade
            + self.foreign_aid
            + self.resource_extraction
            + self.trade_agreement_bonus
        )

    @property
    def total_expenses(self) -> int:
        return (
            self.military
            + self.social
            + self.infrastructure
            + self.debt
            + self.crisis_response
            + self.corruption
            + abs(self.embargo_losses)
            + self.war_costs
        )

    @property
    def net_change(self) -> int:
        return self.total_income - self.total_expenses

    def summary(self) -> dict:
        return {
            "income": self.total_income,
            "expenses": self.total_expenses,
            "net_change": self.net_change,
        }


class MacroReport(BaseModel):
    """Macro indicator movement for one turn."""
    gdp_growth_delta: int = 0
    inflation_delta: int = 0
    unemployment_delta: int = 0
    trade_balance: int = 0
    agriculture_share: int = 20
    industry_share: int = 45
    services_share: int = 35
    gdp_index: int = 100
    inflation_rate: int = 0
    unemployment_rate: int = 0
    five_year_plan: int = 1
    five_year_plan_year: int = 1
    plan_phase: str = "launching"
    crisis: EconomicCrisisType | None = None
    crisis_effects: dict[str, int] = Field(default_factory=dict)

    @property
    def shares_total(self) -> int:
        return self.agriculture_share + self.industry_share + self.services_share


class DiplomaticReport(BaseModel):
    """Foreign-relations outcome for one turn."""
    drift: dict[str, int] = Field(default_factory=dict)  # country_id -> applied delta
    expired_treaties: list[str] = Field(default_factory=list)
    world_events: list[WorldEvent] = Field(default_factory=list)
    espionage_flags: list[str] = Field(default_factory=list)
    world_tension_delta: int = 0


class PoliticalEventKind(str, Enum):
    DECREE = "decree"
    PROPOSAL = "proposal"
    VOTE = "vote"
    FACTION_PRESSURE = "faction_pressure"
    TARGET_RIVAL = "target_rival"
    APPOINT_LOYALIST = "appoint_loyalist"
    BUILD_SUPPORT = "build_support"
    CONGRESS = "congress"
    TRIAL = "trial"
    NO_OP = "no_op"


class PoliticalEvent(BaseModel):
    """Something an NPC or institution did during the political phase."""
    kind: PoliticalEventKind
    turn: int
    actor_id: str | None = None
    slot_id: str | None = None
    option_id: str | None = None
    target_id: str | None = None
    success: bool = True
    summary: str = ""
    vote: VoteResult | None = None


class FiredIncident(BaseModel):
    """Serialized form of a selected or suppressed incident."""
    incident_type: str
    priority: str
    title: str
    text: str = ""
    source: str = ""
    target_ids: list[str] = Field(default_factory=list)
    country_id: str | None = None
    payload: dict = Field(default_factory=dict)
