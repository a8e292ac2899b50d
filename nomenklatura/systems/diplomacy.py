"""
Diplomatic relations engine.

Per turn, in order:
    1. Relationship drift (bloc pull, trade, domestic stability, noise)
    2. Treaty effects and expiry
    3. World tension update
    4. Espionage outcomes
    5. Proxy opportunities, diplomatic crises, alliance strain markers
    6. World event generation with event-chain modifiers

Treaty proposals and terminations are player- or NPC-initiated and exposed
as separate operations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import DEFAULT_BALANCE
from ..state.schema import (
    GovernmentType,
    PoliticalBloc,
    Treaty,
    TreatyType,
    WorldEvent,
    WorldEventType,
)
from ..state.schemas.reports import DiplomaticReport
from ..tools.dice import Dice

if TYPE_CHECKING:
    from ..state.schema import ForeignCountry, GameState

logger = logging.getLogger(__name__)


# ─── Configuration ───────────────────────────────────────────

BLOC_TREATY_MODIFIER: dict[PoliticalBloc, int] = {
    PoliticalBloc.SOCIALIST: 30,
    PoliticalBloc.CAPITALIST: -40,
    PoliticalBloc.NON_ALIGNED: 10,
    PoliticalBloc.RIVAL: -20,
}

GOVERNMENT_EVENTS: dict[GovernmentType, list[WorldEventType]] = {
    GovernmentType.COMMUNIST_STATE: [WorldEventType.PURGE, WorldEventType.LEADERSHIP_CHANGE],
    GovernmentType.SOCIALIST_REPUBLIC: [WorldEventType.PURGE, WorldEventType.LEADERSHIP_CHANGE],
    GovernmentType.LIBERAL_DEMOCRACY: [WorldEventType.ELECTION_RESULT, WorldEventType.LEADERSHIP_CHANGE],
    GovernmentType.CONSTITUTIONAL_MONARCHY: [WorldEventType.ELECTION_RESULT, WorldEventType.LEADERSHIP_CHANGE],
    GovernmentType.AUTHORITARIAN_REPUBLIC: [
        WorldEventType.COUP, WorldEventType.LEADERSHIP_CHANGE, WorldEventType.PURGE,
    ],
    GovernmentType.MILITARY_JUNTA: [
        WorldEventType.COUP, WorldEventType.LEADERSHIP_CHANGE, WorldEventType.PURGE,
    ],
    GovernmentType.ABSOLUTE_MONARCHY: [WorldEventType.REVOLUTION, WorldEventType.LEADERSHIP_CHANGE],
    GovernmentType.THEOCRACY: [WorldEventType.REVOLUTION, WorldEventType.LEADERSHIP_CHANGE],
}


# Events serious enough to make the news feed
MAJOR_WORLD_EVENTS = {
    WorldEventType.COUP,
    WorldEventType.REVOLUTION,
    WorldEventType.BORDER_INCIDENT,
    WorldEventType.PROXY_CONFLICT,
    WorldEventType.DEFECTION,
    WorldEventType.TREATY_VIOLATION,
}

HEADLINES: dict[WorldEventType, str] = {
    WorldEventType.LEADERSHIP_CHANGE: "{name}: NEW LEADER EMERGES",
    WorldEventType.COUP: "MILITARY COUP IN {name}",
    WorldEventType.REVOLUTION: "REVOLUTION SWEEPS {name}",
    WorldEventType.PURGE: "{name} PARTY PURGE REPORTED",
    WorldEventType.ELECTION_RESULT: "{name} ELECTION RESULTS ANNOUNCED",
    WorldEventType.ECONOMIC_CRISIS: "ECONOMIC TURMOIL IN {name}",
    WorldEventType.INDUSTRIAL_ACCIDENT: "INDUSTRIAL DISASTER IN {name}",
    WorldEventType.HARVEST_FAILURE: "{name} HARVEST FAILS",
    WorldEventType.TRADE_DISPUTE: "TRADE DISPUTE WITH {name}",
    WorldEventType.RESOURCE_DISCOVERY: "{name} ANNOUNCES RESOURCE FIND",
    WorldEventType.BORDER_INCIDENT: "BORDER CLASH WITH {name}",
    WorldEventType.ARMS_BUILD_UP: "{name} EXPANDS ARSENAL",
    WorldEventType.DEFECTION: "DEFECTOR FLEES {name}",
    WorldEventType.MILITARY_EXERCISE: "{name} STAGES MILITARY EXERCISES",
    WorldEventType.PROXY_CONFLICT: "PROXY WAR FLARES NEAR {name}",
    WorldEventType.TREATY_PROPOSAL: "{name} PROPOSES NEW TREATY",
    WorldEventType.TREATY_VIOLATION: "{name} ACCUSED OF TREATY VIOLATION",
    WorldEventType.AMBASSADOR_RECALL: "{name} RECALLS AMBASSADOR",
    WorldEventType.SUMMIT_ANNOUNCEMENT: "SUMMIT WITH {name} ANNOUNCED",
    WorldEventType.SECRET_NEGOTIATIONS: "RUMOURS OF SECRET TALKS WITH {name}",
}


@dataclass
class TreatyOutcome:
    """Result of a treaty proposal."""
    country_id: str
    treaty_type: TreatyType
    chance: int
    roll: int
    accepted: bool
    treaty: Treaty | None = None


def _bloc_pull(country: "ForeignCountry") -> int:
    """Drift toward the bloc attractor."""
    rel = country.relationship_score
    bloc = country.political_bloc
    if bloc == PoliticalBloc.SOCIALIST:
        return 1 if rel < 80 else 0
    if bloc == PoliticalBloc.CAPITALIST:
        return -1 if rel > -80 else 0
    if bloc == PoliticalBloc.NON_ALIGNED:
        if rel > 10:
            return -1
        if rel < -10:
            return 1
        return 0
    return -1 if rel > -60 else 0


def _trade_pressure(country: "ForeignCountry") -> int:
    if country.trade_volume > 50:
        return 1
    if country.political_bloc == PoliticalBloc.CAPITALIST and country.trade_volume < 10:
        return -1
    return 0


# ─── Engine ──────────────────────────────────────────────────

class DiplomaticEngine:
    """
    Foreign relations simulation.

    Usage:
        engine = DiplomaticEngine(dice=Dice(3))
        report = engine.process_turn(state)
        outcome = engine.propose_treaty(TreatyType.TRADE_AGREEMENT, "hungary", state)
    """

    def __init__(self, balance: dict | None = None, dice: Dice | None = None):
        self.config = (balance or DEFAULT_BALANCE)["diplomacy"]
        self.dice = dice or Dice()

    def process_turn(self, state: "GameState") -> DiplomaticReport:
        report = DiplomaticReport()
        self._drift(state, report)
        self._treaty_effects(state, report)
        report.world_tension_delta = self._update_world_tension(state)
        self._espionage(state, report)
        self._proxy_opportunities(state)
        report.world_tension_delta += self._diplomatic_crises(state)
        self._alliance_strain(state)
        report.world_events = self.generate_world_events(state)
        return report

    # ─── Drift ──────────────────────────────────────────────

    def _drift(self, state: "GameState", report: DiplomaticReport) -> None:
        unstable = state.stats.stability < 40
        for country in state.countries:
            drift = _bloc_pull(country) + _trade_pressure(country)
            if unstable:
                if country.political_bloc == PoliticalBloc.SOCIALIST:
                    drift -= 2
                elif country.political_bloc in (PoliticalBloc.CAPITALIST, PoliticalBloc.RIVAL):
                    country.modify_tension(2)
            drift += self.dice.spread(2)
            report.drift[country.country_id] = country.modify_relationship(drift)

    # ─── Treaties ───────────────────────────────────────────

    def _treaty_effects(self, state: "GameState", report: DiplomaticReport) -> None:
        turn = state.turn_number
        for country in state.countries:
            socialist = country.political_bloc == PoliticalBloc.SOCIALIST
            for treaty in list(country.treaties):
                if treaty.is_expired(turn):
                    country.remove_treaty(treaty.id)
                    flag = f"treaty_expired_{country.country_id}_{treaty.treaty_type.value}"
                    state.add_flag(flag)
                    report.expired_treaties.append(flag)
                    logger.info(f"Treaty {treaty.treaty_type.value} with {country.country_id} expired")
                    continue

                if treaty.treaty_type == TreatyType.TRADE_AGREEMENT:
                    state.apply_stat("treasury", 2)
                elif treaty.treaty_type == TreatyType.AID_PACKAGE and socialist:
                    state.apply_stat("treasury", -5)
                    country.modify_relationship(1)
                elif treaty.treaty_type == TreatyType.MUTUAL_DEFENSE and socialist:
                    for other in state.countries:
                        if other.political_bloc == PoliticalBloc.CAPITALIST:
                            other.modify_tension(1)
                elif treaty.treaty_type == TreatyType.CULTURAL_EXCHANGE:
                    country.modify_relationship(1)
                elif treaty.treaty_type == TreatyType.ESPIONAGE_AGREEMENT:
                    country.our_intelligence_assets = min(100, country.our_intelligence_assets + 1)

    def acceptance_chance(self, treaty_type: TreatyType, country: "ForeignCountry") -> int:
        """Percent chance the country accepts, clamped to [0, 100]."""
        chance = 50 + int(country.relationship_score / 2)
        chance += BLOC_TREATY_MODIFIER[country.political_bloc]
        socialist = country.political_bloc == PoliticalBloc.SOCIALIST

        if treaty_type == TreatyType.MUTUAL_DEFENSE:
            if not socialist:
                chance -= 30
        elif treaty_type == TreatyType.TRADE_AGREEMENT:
            chance += 15
        elif treaty_type == TreatyType.AID_PACKAGE:
            if country.economic_power < 40:
                chance += 20
        elif treaty_type == TreatyType.CULTURAL_EXCHANGE:
            chance += 10
        elif treaty_type == TreatyType.NON_AGGRESSION:
            if country.diplomatic_tension > 50:
                chance += 15
        elif treaty_type == TreatyType.NUCLEAR_SHARING:
            if not country.has_nuclear_weapons and socialist:
                chance += 10
            else:
                chance = 5
        elif treaty_type == TreatyType.ESPIONAGE_AGREEMENT:
            if socialist:
                chance += 20
            else:
                chance = 10

        return max(0, min(100, chance))

    def propose_treaty(
        self,
        treaty_type: TreatyType,
        country_id: str,
        state: "GameState",
        terms: str = "",
    ) -> TreatyOutcome | None:
        """
        Offer a treaty to a country.

        Returns None when the country does not exist.
        """
        country = state.country(country_id)
        if country is None:
            logger.warning(f"Treaty proposal to unknown country {country_id}")
            return None

        chance = self.acceptance_chance(treaty_type, country)
        roll = self.dice.percentile(chance)
        turn = state.turn_number
        outcome = TreatyOutcome(
            country_id=country_id,
            treaty_type=treaty_type,
            chance=chance,
            roll=roll.roll,
            accepted=roll.success,
        )

        if roll.success:
            expiry = None if treaty_type == TreatyType.MUTUAL_DEFENSE else turn + self.config["treaty_duration"]
            treaty = Treaty(
                treaty_type=treaty_type,
                signed_turn=turn,
                expiration_turn=expiry,
                terms=terms,
                is_secret=treaty_type in (TreatyType.ESPIONAGE_AGREEMENT, TreatyType.NUCLEAR_SHARING),
            )
            country.add_treaty(treaty)
            country.modify_relationship(10)
            if treaty_type == TreatyType.MUTUAL_DEFENSE:
                state.apply_stat("military_readiness", 5)
            elif treaty_type == TreatyType.TRADE_AGREEMENT:
                country.trade_volume = min(100, country.trade_volume + 15)
            elif treaty_type == TreatyType.AID_PACKAGE:
                state.apply_stat("treasury", -30)
            outcome.treaty = treaty
        else:
            country.modify_relationship(-3)

        verdict = "accepted" if roll.success else "rejected"
        state.add_flag(f"treaty_proposal_{treaty_type.value}_{country_id}_{verdict}_{turn}")
        logger.info(
            f"{treaty_type.value} proposal to {country_id} {verdict} "
            f"(rolled {roll.roll} against {chance})"
        )
        return outcome

    def terminate_treaty(self, treaty_id: str, country_id: str, state: "GameState") -> bool:
        """Withdraw from a treaty. Returns False if the country or treaty is unknown."""
        country = state.country(country_id)
        if country is None:
            logger.warning(f"Treaty termination with unknown country {country_id}")
            return False
        treaty = country.remove_treaty(treaty_id)
        if treaty is None:
            logger.warning(f"No treaty {treaty_id} with {country_id}")
            return False

        country.modify_relationship(-15)
        if treaty.treaty_type == TreatyType.MUTUAL_DEFENSE:
            country.modify_relationship(-20)
            state.apply_stat("reputation", -10)
        elif treaty.treaty_type == TreatyType.TRADE_AGREEMENT:
            country.trade_volume = max(0, country.trade_volume - 15)
        elif treaty.treaty_type == TreatyType.AID_PACKAGE:
            country.modify_relationship(-10)

        state.add_flag(
            f"treaty_terminated_{treaty.treaty_type.value}_{country_id}_{state.turn_number}"
        )
        return True

    # ─── Tension and Intelligence ───────────────────────────

    def _update_world_tension(self, state: "GameState") -> int:
        change = 0
        for country in state.countries:
            if country.diplomatic_tension > 60:
                change += 1
            if country.has_nuclear_weapons and country.diplomatic_tension > 70:
                change += 3
        if state.stats.stability < 30:
            change += 5

        applied = 0
        if change > 0:
            applied += state.apply_stat("world_tension", change // 2)

        hostile = sum(1 for c in state.countries if c.is_enemy)
        if hostile < 3 and state.stats.stability > 60:
            applied += state.apply_stat("world_tension", -1)
        return applied

    def _espionage(self, state: "GameState", report: DiplomaticReport) -> None:
        turn = state.turn_number
        for country in state.countries:
            activity = country.espionage_activity
            if activity > 50 and self.dice.d100() <= activity // 3:
                effect = self.dice.randint(1, 4)
                if effect == 1:
                    state.apply_stat("military_readiness", -3)
                elif effect == 2:
                    state.apply_stat("treasury", -5)
                elif effect == 3:
                    state.apply_stat("reputation", -3)
                if effect != 4:
                    flag = f"espionage_incident_{country.country_id}_{turn}"
                    state.add_flag(flag)
                    report.espionage_flags.append(flag)

            if country.our_intelligence_assets > 30 and self.dice.d100() <= activity // 4:
                country.our_intelligence_assets = max(0, country.our_intelligence_assets - 10)
                country.modify_relationship(-5)
                flag = f"agents_compromised_{country.country_id}_{turn}"
                state.add_flag(flag)
                report.espionage_flags.append(flag)

    def _proxy_opportunities(self, state: "GameState") -> None:
        for country in state.countries:
            if (
                country.political_bloc == PoliticalBloc.NON_ALIGNED
                and country.diplomatic_tension > 50
                and self.dice.chance(0.05)
            ):
                state.variables[f"proxy_opportunity_{country.country_id}"] = str(state.turn_number)

    def _diplomatic_crises(self, state: "GameState") -> int:
        applied = 0
        for country in state.countries:
            tension = country.diplomatic_tension
            if tension > 80 and self.dice.percentile(tension // 4).success:
                state.variables[f"diplomatic_crisis_{country.country_id}"] = str(state.turn_number)
                applied += state.apply_stat("world_tension", 10)
                logger.info(f"Diplomatic crisis with {country.country_id} (tension {tension})")
        return applied

    def _alliance_strain(self, state: "GameState") -> None:
        for country in state.countries:
            if country.political_bloc != PoliticalBloc.SOCIALIST:
                continue
            key = f"alliance_strain_{country.country_id}"
            if country.relationship_score < 40:
                state.variables[key] = str(state.turn_number)
            elif country.relationship_score >= 50:
                state.variables.pop(key, None)

    # ─── World Events ───────────────────────────────────────

    def eligible_event_types(self, country: "ForeignCountry") -> list[WorldEventType]:
        types = [
            WorldEventType.BORDER_INCIDENT,
            WorldEventType.TRADE_DISPUTE,
            WorldEventType.TREATY_PROPOSAL,
            WorldEventType.SUMMIT_ANNOUNCEMENT,
            WorldEventType.SECRET_NEGOTIATIONS,
        ]
        types.extend(GOVERNMENT_EVENTS[country.government_type])
        types.extend([
            WorldEventType.ECONOMIC_CRISIS,
            WorldEventType.HARVEST_FAILURE,
            WorldEventType.RESOURCE_DISCOVERY,
        ])
        if country.relationship_score < -20:
            types.extend([
                WorldEventType.ARMS_BUILD_UP,
                WorldEventType.MILITARY_EXERCISE,
                WorldEventType.PROXY_CONFLICT,
            ])
        if country.political_bloc in (PoliticalBloc.SOCIALIST, PoliticalBloc.RIVAL):
            types.append(WorldEventType.DEFECTION)
        return types

    def chain_modifier(self, past: WorldEventType, new: WorldEventType) -> float:
        """Multiplier a past event applies to a new event's probability."""
        return self.config["chain_modifiers"].get(past.value, {}).get(new.value, 1.0)

    def event_probability(
        self,
        event_type: WorldEventType,
        country: "ForeignCountry",
        state: "GameState",
    ) -> float:
        """
        Final probability for one event type in one country, clamped to [0, 1].

        Base rate times contextual modifiers times one chain multiplier per
        qualifying recent event in that country.
        """
        probability = self.config["base_probabilities"].get(event_type.value, 0.01)

        if event_type == WorldEventType.BORDER_INCIDENT and country.diplomatic_tension > 30:
            probability *= 2.0
        if event_type in (WorldEventType.REVOLUTION, WorldEventType.COUP) and state.stats.stability < 40:
            probability *= 1.5
        if event_type == WorldEventType.ECONOMIC_CRISIS and state.stats.treasury < 30:
            probability *= 1.3
        if event_type == WorldEventType.TREATY_PROPOSAL and country.relationship_score > 0:
            probability *= 1.5

        since = state.turn_number - self.config["chain_lookback_turns"]
        for past in state.world_events_for(country.country_id, since):
            probability *= self.chain_modifier(past.event_type, event_type)

        return max(0.0, min(1.0, probability))

    def generate_world_events(self, state: "GameState") -> list[WorldEvent]:
        """Roll world events, apply their consequences and record them."""
        max_events = self.dice.randint(1, self.config["max_world_events"])
        events: list[WorldEvent] = []

        for country in state.countries:
            if len(events) >= max_events:
                break
            for event_type in self.eligible_event_types(country):
                if len(events) >= max_events:
                    break
                probability = self.event_probability(event_type, country, state)
                if self.dice.uniform() < probability:
                    events.append(self._create_event(event_type, country, state))

        for event in events:
            self._apply_consequences(event, state)
        state.world_events.extend(events)
        return events

    def _create_event(
        self,
        event_type: WorldEventType,
        country: "ForeignCountry",
        state: "GameState",
    ) -> WorldEvent:
        cid = country.country_id
        consequences: list[dict] = []
        if event_type == WorldEventType.BORDER_INCIDENT:
            consequences.append({"kind": "relationship", "target": cid, "amount": -10})
            consequences.append({"kind": "tension", "target": cid, "amount": 15})
        elif event_type == WorldEventType.ECONOMIC_CRISIS:
            if country.political_bloc == PoliticalBloc.SOCIALIST:
                consequences.append({"kind": "treasury", "amount": -3})
        elif event_type == WorldEventType.TREATY_PROPOSAL:
            consequences.append({"kind": "relationship", "target": cid, "amount": 5})
        elif event_type in (WorldEventType.REVOLUTION, WorldEventType.COUP):
            consequences.append({"kind": "stability", "amount": -5})
            consequences.append({"kind": "relationship", "target": cid, "amount": self.dice.spread(20)})

        return WorldEvent(
            event_type=event_type,
            turn_occurred=state.turn_number,
            country_id=cid,
            headline=HEADLINES[event_type].format(name=(country.name or cid).upper()),
            consequences=consequences,
        )

    def _apply_consequences(self, event: WorldEvent, state: "GameState") -> None:
        for consequence in event.consequences:
            kind = consequence["kind"]
            amount = consequence["amount"]
            if kind in ("relationship", "tension"):
                country = state.country(consequence.get("target", ""))
                if country is None:
                    logger.debug(f"World event {event.id} targets missing country")
                    continue
                if kind == "relationship":
                    country.modify_relationship(amount)
                else:
                    country.modify_tension(amount)
            elif kind == "treasury":
                state.apply_stat("treasury", amount)
            elif kind == "stability":
                state.apply_stat("stability", amount)
