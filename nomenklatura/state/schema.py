"""
Pydantic models for Nomenklatura game state.

The GameState is the single owning store for every entity the turn engine
touches. Other components hold string ids and look entities up through the
accessors here, never through object references.
"""

import logging
from enum import Enum
from typing import ClassVar
from uuid import uuid4

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class PoliticalBloc(str, Enum):
    SOCIALIST = "socialist"
    CAPITALIST = "capitalist"
    NON_ALIGNED = "non_aligned"
    RIVAL = "rival"


class GovernmentType(str, Enum):
    COMMUNIST_STATE = "communist_state"
    SOCIALIST_REPUBLIC = "socialist_republic"
    LIBERAL_DEMOCRACY = "liberal_democracy"
    CONSTITUTIONAL_MONARCHY = "constitutional_monarchy"
    AUTHORITARIAN_REPUBLIC = "authoritarian_republic"
    MILITARY_JUNTA = "military_junta"
    ABSOLUTE_MONARCHY = "absolute_monarchy"
    THEOCRACY = "theocracy"


class TreatyType(str, Enum):
    MUTUAL_DEFENSE = "mutual_defense"
    TRADE_AGREEMENT = "trade_agreement"
    AID_PACKAGE = "aid_package"
    CULTURAL_EXCHANGE = "cultural_exchange"
    NON_AGGRESSION = "non_aggression"
    NUCLEAR_SHARING = "nuclear_sharing"
    ESPIONAGE_AGREEMENT = "espionage_agreement"


class WorldEventType(str, Enum):
    # Political
    LEADERSHIP_CHANGE = "leadership_change"
    COUP = "coup"
    REVOLUTION = "revolution"
    PURGE = "purge"
    ELECTION_RESULT = "election_result"
    # Economic
    ECONOMIC_CRISIS = "economic_crisis"
    INDUSTRIAL_ACCIDENT = "industrial_accident"
    HARVEST_FAILURE = "harvest_failure"
    TRADE_DISPUTE = "trade_dispute"
    RESOURCE_DISCOVERY = "resource_discovery"
    # Military
    BORDER_INCIDENT = "border_incident"
    ARMS_BUILD_UP = "arms_build_up"
    DEFECTION = "defection"
    MILITARY_EXERCISE = "military_exercise"
    PROXY_CONFLICT = "proxy_conflict"
    # Diplomatic
    TREATY_PROPOSAL = "treaty_proposal"
    TREATY_VIOLATION = "treaty_violation"
    AMBASSADOR_RECALL = "ambassador_recall"
    SUMMIT_ANNOUNCEMENT = "summit_announcement"
    SECRET_NEGOTIATIONS = "secret_negotiations"


class LawCategory(str, Enum):
    INSTITUTIONAL = "institutional"  # Never decreed, always voted
    ECONOMIC = "economic"
    SECURITY = "security"
    SOCIAL = "social"
    REGIONAL = "regional"
    FOREIGN = "foreign"
    MILITARY = "military"


class RegionType(str, Enum):
    CAPITAL = "capital"
    INDUSTRIAL = "industrial"
    AGRICULTURAL = "agricultural"
    EXTRACTIVE = "extractive"
    COASTAL = "coastal"
    BORDER = "border"


class EconomicSystemType(str, Enum):
    COMMAND_ECONOMY = "command_economy"
    MARKET_SOCIALISM = "market_socialism"
    MIXED_ECONOMY = "mixed_economy"
    FREE_MARKET = "free_market"
    CRONY_CAPITALISM = "crony_capitalism"


class EconomicCrisisType(str, Enum):
    SHORTAGE = "shortage"
    HYPERINFLATION = "hyperinflation"
    BANK_RUN = "bank_run"
    HARVEST_FAILURE = "harvest_failure"
    INDUSTRIAL_COLLAPSE = "industrial_collapse"
    TRADE_BLOCKADE = "trade_blockade"
    LABOR_UNREST = "labor_unrest"
    BLACK_MARKET = "black_market"


class CharacterStatus(str, Enum):
    ACTIVE = "active"
    UNDER_INVESTIGATION = "under_investigation"
    IMPRISONED = "imprisoned"
    EXILED = "exiled"
    DEAD = "dead"


class CongressStatus(str, Enum):
    CONVENING = "convening"
    DELIBERATING = "deliberating"
    VOTING = "voting"
    CONCLUDED = "concluded"


class TrialPhase(str, Enum):
    ACCUSATION = "accusation"
    INVESTIGATION = "investigation"
    PROCEEDINGS = "proceedings"
    VERDICT = "verdict"
    CLOSED = "closed"


# -----------------------------------------------------------------------------
# Core Models
# -----------------------------------------------------------------------------

def generate_id() -> str:
    return str(uuid4())[:8]


class NationalStats(BaseModel):
    """Named numeric scalars. Mutate only through GameState.apply_stat."""
    stability: int = 50
    popular_support: int = 50
    military_loyalty: int = 50
    elite_loyalty: int = 50
    treasury: int = 50
    industrial_output: int = 50
    food_supply: int = 50
    international_standing: int = 50
    reputation: int = 50
    world_tension: int = 30
    military_readiness: int = 50
    power_consolidation: int = 30

    # Player career signals
    standing: int = 50
    patron_favor: int = 50
    rival_threat: int = 30
    network: int = 20
    wealth_visibility: int = 0
    corruption_evidence: int = 0

    BOUNDS: ClassVar[dict[str, tuple[int, int]]] = {
        "treasury": (-100, 500),
    }
    DEFAULT_BOUNDS: ClassVar[tuple[int, int]] = (0, 100)

    @classmethod
    def bounds_for(cls, name: str) -> tuple[int, int]:
        return cls.BOUNDS.get(name, cls.DEFAULT_BOUNDS)


class Region(BaseModel):
    region_id: str
    name: str = ""
    region_type: RegionType = RegionType.INDUSTRIAL
    industrial_capacity: int = 40   # 0-100
    agricultural_output: int = 40   # 0-100
    popular_loyalty: int = 50       # 0-100


class EconomyState(BaseModel):
    """Macro indicators recomputed each turn by the economic engine."""
    gdp_index: int = 100            # 50-200, base 100
    inflation_rate: int = 8         # 0-100
    unemployment_rate: int = 4      # 0-50
    trade_balance: int = 5          # -30..30
    agriculture_share: int = 20
    industry_share: int = 50
    services_share: int = 30
    system_type: EconomicSystemType = EconomicSystemType.MARKET_SOCIALISM
    five_year_plan: int = 1
    five_year_plan_year: int = 1
    gdp_history: list[int] = Field(default_factory=list)
    active_crisis: EconomicCrisisType | None = None

    GDP_BOUNDS: ClassVar[tuple[int, int]] = (50, 200)
    INFLATION_BOUNDS: ClassVar[tuple[int, int]] = (0, 100)
    UNEMPLOYMENT_BOUNDS: ClassVar[tuple[int, int]] = (0, 50)

    @property
    def gdp_growth_rate(self) -> float:
        """Percentage change of the GDP index over the last recorded turn."""
        if len(self.gdp_history) < 2:
            return 0.0
        previous, current = self.gdp_history[-2], self.gdp_history[-1]
        if previous <= 0:
            return 0.0
        return (current - previous) / previous * 100.0

    @property
    def in_recession(self) -> bool:
        """Three declines across the last four recorded GDP values."""
        recent = self.gdp_history[-4:]
        if len(recent) < 4:
            return False
        declines = sum(1 for a, b in zip(recent, recent[1:]) if b < a)
        return declines >= 3


class Treaty(BaseModel):
    id: str = Field(default_factory=generate_id)
    treaty_type: TreatyType
    signed_turn: int
    expiration_turn: int | None = None  # None = indefinite
    terms: str = ""
    is_secret: bool = False

    def is_expired(self, turn: int) -> bool:
        return self.expiration_turn is not None and self.expiration_turn <= turn


class ForeignCountry(BaseModel):
    country_id: str
    name: str = ""
    political_bloc: PoliticalBloc = PoliticalBloc.NON_ALIGNED
    government_type: GovernmentType = GovernmentType.AUTHORITARIAN_REPUBLIC
    relationship_score: int = 0       # -100..100
    diplomatic_tension: int = 20      # 0..100
    trade_volume: int = 20            # 0..100
    economic_power: int = 50          # 0..100
    has_nuclear_weapons: bool = False
    espionage_activity: int = 20      # Their spying on us, 0..100
    our_intelligence_assets: int = 20 # Our spying on them, 0..100
    bordering_region_id: str | None = None
    treaties: list[Treaty] = Field(default_factory=list)

    @property
    def is_ally(self) -> bool:
        return self.relationship_score >= 50

    @property
    def is_enemy(self) -> bool:
        return self.relationship_score <= -50

    def modify_relationship(self, delta: int) -> int:
        """Shift relationship score, clamped to -100..100. Returns applied delta."""
        before = self.relationship_score
        self.relationship_score = max(-100, min(100, before + delta))
        return self.relationship_score - before

    def modify_tension(self, delta: int) -> int:
        before = self.diplomatic_tension
        self.diplomatic_tension = max(0, min(100, before + delta))
        return self.diplomatic_tension - before

    def has_treaty(self, treaty_type: TreatyType) -> bool:
        return any(t.treaty_type == treaty_type for t in self.treaties)

    def add_treaty(self, treaty: Treaty) -> None:
        self.treaties.append(treaty)

    def remove_treaty(self, treaty_id: str) -> Treaty | None:
        for i, treaty in enumerate(self.treaties):
            if treaty.id == treaty_id:
                return self.treaties.pop(i)
        return None


class WorldEvent(BaseModel):
    """A foreign incident recorded for event-chain lookback."""
    id: str = Field(default_factory=generate_id)
    event_type: WorldEventType
    turn_occurred: int
    country_id: str
    headline: str = ""
    consequences: list[dict] = Field(default_factory=list)
    # e.g. [{"kind": "relationship", "target": "prussia", "amount": -10}]


# -----------------------------------------------------------------------------
# Policy
# -----------------------------------------------------------------------------

class PolicyEffects(BaseModel):
    stat_modifiers: dict[str, int] = Field(default_factory=dict)
    faction_modifiers: dict[str, int] = Field(default_factory=dict)
    enables_decrees: bool = False
    prevents_succession: bool = False


class PolicyOption(BaseModel):
    id: str
    name: str = ""
    effects: PolicyEffects = Field(default_factory=PolicyEffects)
    beneficiaries: list[str] = Field(default_factory=list)  # Faction ids
    losers: list[str] = Field(default_factory=list)
    is_default: bool = False
    is_extreme: bool = False
    minimum_power_required: int = 40
    minimum_position_index: int = 5
    required_faction_support: dict[str, int] = Field(default_factory=dict)


class VoteResult(BaseModel):
    in_favor: int
    against: int
    abstained: int
    unanimous: bool = False

    @property
    def passed(self) -> bool:
        return self.in_favor > self.against


class PolicyChangeRecord(BaseModel):
    """Append-only history entry. Rejected votes are recorded too."""
    id: str = Field(default_factory=generate_id)
    slot_id: str
    previous_option_id: str
    new_option_id: str
    changed_by: str | None = None
    changed_by_player: bool = False
    turn_changed: int
    was_decreed: bool = False
    vote_result: VoteResult | None = None
    passed: bool = True


class PolicySlot(BaseModel):
    slot_id: str
    name: str = ""
    category: LawCategory = LawCategory.ECONOMIC
    options: list[PolicyOption] = Field(default_factory=list)
    current_option_id: str
    change_history: list[PolicyChangeRecord] = Field(default_factory=list)

    # At most one pending proposal
    pending_option_id: str | None = None
    pending_character_id: str | None = None
    pending_turn: int | None = None

    @property
    def has_pending_proposal(self) -> bool:
        return self.pending_option_id is not None

    @property
    def current_option(self) -> PolicyOption | None:
        return self.option(self.current_option_id)

    def option(self, option_id: str) -> PolicyOption | None:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def can_change(
        self,
        option_id: str,
        power: int,
        position_index: int,
        faction_standings: dict[str, int],
    ) -> tuple[bool, str | None]:
        """Check option requirements. Returns (allowed, reason_if_not)."""
        opt = self.option(option_id)
        if opt is None:
            return False, "Invalid option"
        if option_id == self.current_option_id:
            return False, "Already active policy"
        if power < opt.minimum_power_required:
            return False, f"Requires {opt.minimum_power_required} power consolidation"
        if position_index < opt.minimum_position_index:
            return False, "Requires higher position"
        for faction_id, minimum in opt.required_faction_support.items():
            if faction_standings.get(faction_id, 0) < minimum:
                return False, f"Insufficient support from {faction_id}"
        return True, None

    def propose_change(self, option_id: str, character_id: str, turn: int) -> None:
        self.pending_option_id = option_id
        self.pending_character_id = character_id
        self.pending_turn = turn

    def clear_pending_proposal(self) -> None:
        self.pending_option_id = None
        self.pending_character_id = None
        self.pending_turn = None


# -----------------------------------------------------------------------------
# Characters and institutions
# -----------------------------------------------------------------------------

class Goal(BaseModel):
    goal_type: str  # "seek_promotion", "destroy_rival", "consolidate_power", ...
    priority: int = 5
    active: bool = True
    progress: int = 0  # 0-100, the only field the political engine mutates


class Character(BaseModel):
    """NPC agent subset consumed by the political engine and generators."""
    character_id: str = Field(default_factory=generate_id)
    name: str = ""
    faction_id: str | None = None
    position_index: int | None = None  # 0-8, 8 = General Secretary
    status: CharacterStatus = CharacterStatus.ACTIVE

    # Personality, 0-100
    ambition: int = 50
    paranoia: int = 50
    ruthlessness: int = 50
    competence: int = 50
    loyalty: int = 50
    corruption: int = 30

    # Relationship to the player
    disposition: int = 0       # -100..100
    grudge_level: int = 0      # 0-100
    fear_level: int = 0        # 0-100
    is_patron: bool = False
    is_rival: bool = False

    goals: list[Goal] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status in (CharacterStatus.ACTIVE, CharacterStatus.UNDER_INVESTIGATION)


class Faction(BaseModel):
    faction_id: str
    name: str = ""
    power: int = 50            # 0-100
    player_standing: int = 50  # 0-100


class StandingCommittee(BaseModel):
    chair_id: str | None = None
    member_ids: list[str] = Field(default_factory=list)

    def faction_balance(self, characters: list[Character]) -> dict[str, int]:
        """Seats held per faction id."""
        by_id = {c.character_id: c for c in characters}
        seats: dict[str, int] = {}
        for member_id in self.member_ids:
            member = by_id.get(member_id)
            if member and member.faction_id:
                seats[member.faction_id] = seats.get(member.faction_id, 0) + 1
        return seats


class CongressSession(BaseModel):
    session_id: str = Field(default_factory=generate_id)
    turn_convened: int
    status: CongressStatus = CongressStatus.CONVENING
    status_changed_turn: int
    delegates_present: int = 2900
    legitimacy_granted: int = 0

    @property
    def in_session(self) -> bool:
        return self.status != CongressStatus.CONCLUDED


class ShowTrial(BaseModel):
    trial_id: str = Field(default_factory=generate_id)
    defendant_id: str
    instigator_id: str | None = None
    charge: str = "anti-party activity"
    phase: TrialPhase = TrialPhase.ACCUSATION
    started_turn: int
    phase_changed_turn: int

    @property
    def is_active(self) -> bool:
        return self.phase != TrialPhase.CLOSED


class HistoryEntry(BaseModel):
    """A past player decision that may echo back later."""
    id: str = Field(default_factory=generate_id)
    turn: int
    kind: str = "decision"
    summary: str = ""
    follow_up_hook: str | None = None


# -----------------------------------------------------------------------------
# Scheduler bookkeeping
# -----------------------------------------------------------------------------

class CooldownEntry(BaseModel):
    fired_turn: int
    expires_turn: int


class PacingState(BaseModel):
    consecutive_event_turns: int = 0
    events_this_turn: int = 0
    fired_last_turn: bool = False


class IncidentRecord(BaseModel):
    incident_type: str
    priority: str
    turn: int
    title: str = ""
    country_id: str | None = None
    target_ids: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Game State
# -----------------------------------------------------------------------------

class GameState(BaseModel):
    """
    The State Store.

    Owns all entities. Components read and write through the accessors
    below; apply_stat is the only path for changing a named stat.
    """
    id: str = Field(default_factory=generate_id)
    name: str = "New Game"
    turn_number: int = 0

    player_position_index: int = 1
    player_faction_id: str | None = None

    stats: NationalStats = Field(default_factory=NationalStats)
    economy: EconomyState = Field(default_factory=EconomyState)

    regions: list[Region] = Field(default_factory=list)
    countries: list[ForeignCountry] = Field(default_factory=list)
    policy_slots: list[PolicySlot] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)
    factions: list[Faction] = Field(default_factory=list)
    committee: StandingCommittee | None = None
    decrees_enabled: bool = True

    flags: set[str] = Field(default_factory=set)
    variables: dict[str, str] = Field(default_factory=dict)

    history: list[HistoryEntry] = Field(default_factory=list)
    world_events: list[WorldEvent] = Field(default_factory=list)
    congress_sessions: list[CongressSession] = Field(default_factory=list)
    show_trials: list[ShowTrial] = Field(default_factory=list)

    incident_history: list[IncidentRecord] = Field(default_factory=list)
    incident_cooldowns: dict[str, CooldownEntry] = Field(default_factory=dict)
    pacing: PacingState = Field(default_factory=PacingState)

    # ─── Stats ─────────────────────────────────────────────────

    def get_stat(self, name: str) -> int:
        if name not in NationalStats.model_fields:
            logger.warning(f"Unknown stat requested: {name}")
            return 0
        return getattr(self.stats, name)

    def apply_stat(self, name: str, delta: int) -> int:
        """
        Apply a delta to a named stat, clamped to that stat's bounds.

        Returns the delta actually applied. Unknown names are ignored.
        """
        if name not in NationalStats.model_fields:
            logger.warning(f"Ignoring change to unknown stat: {name} ({delta:+d})")
            return 0
        low, high = NationalStats.bounds_for(name)
        before = getattr(self.stats, name)
        after = max(low, min(high, before + delta))
        setattr(self.stats, name, after)
        return after - before

    # ─── Flags and variables ───────────────────────────────────

    def add_flag(self, flag: str) -> None:
        self.flags.add(flag)

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags

    def remove_flag(self, flag: str) -> None:
        self.flags.discard(flag)

    # ─── Lookups ───────────────────────────────────────────────

    def country(self, country_id: str) -> ForeignCountry | None:
        for c in self.countries:
            if c.country_id == country_id:
                return c
        return None

    def policy_slot(self, slot_id: str) -> PolicySlot | None:
        for slot in self.policy_slots:
            if slot.slot_id == slot_id:
                return slot
        return None

    def character(self, character_id: str) -> Character | None:
        for char in self.characters:
            if char.character_id == character_id:
                return char
        return None

    def faction(self, faction_id: str) -> Faction | None:
        for faction in self.factions:
            if faction.faction_id == faction_id:
                return faction
        return None

    @property
    def patron(self) -> Character | None:
        return next((c for c in self.characters if c.is_patron and c.is_active), None)

    @property
    def primary_rival(self) -> Character | None:
        return next((c for c in self.characters if c.is_rival and c.is_active), None)

    def faction_standings(self) -> dict[str, int]:
        return {f.faction_id: f.player_standing for f in self.factions}

    def world_events_for(self, country_id: str, since_turn: int) -> list[WorldEvent]:
        """World events for one country on or after since_turn."""
        return [
            e for e in self.world_events
            if e.country_id == country_id and e.turn_occurred >= since_turn
        ]

    @property
    def current_congress(self) -> CongressSession | None:
        return self.congress_sessions[-1] if self.congress_sessions else None

    @property
    def active_trials(self) -> list[ShowTrial]:
        return [t for t in self.show_trials if t.is_active]
