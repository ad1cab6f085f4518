from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import requests
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator, model_validator

from api_client import SportMonksClient
from markets import supported_markets as market_table
from models import (
    MAX_COMBINATION_LEGS,
    Bet,
    CombinationBet,
    Leg,
    OutcomeStatus,
    Selection,
)
from settlement import settle, settle_batch, settle_combination

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
#  Pydantic models
# ═══════════════════════════════════════════════════════════════════════════════


class SelectionIn(BaseModel):
    market: Union[int, str]
    label: str = ""
    threshold: Optional[float] = None
    handicap: Optional[float] = None
    participant: Optional[str] = None
    text: str = ""
    description: Optional[str] = None
    odd_id: Optional[Union[int, str]] = None

    @field_validator("label", "text")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("participant", "description")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def validate_market(self) -> "SelectionIn":
        if isinstance(self.market, str) and not self.market.strip():
            raise ValueError("market must not be empty")
        return self


class BetIn(BaseModel):
    stake: Decimal = Field(gt=0)
    odds: Decimal = Field(ge=1)
    selection: SelectionIn
    event_id: Optional[Union[int, str]] = None
    event_name: Optional[str] = None
    inplay: bool = False
    bet_id: Optional[str] = None


class LegIn(BaseModel):
    selection: SelectionIn
    odds: Decimal = Field(ge=1)
    event_id: Optional[Union[int, str]] = None
    event_name: Optional[str] = None
    inplay: bool = False
    status: OutcomeStatus = OutcomeStatus.PENDING
    reason: str = ""


class CombinationBetIn(BaseModel):
    stake: Decimal = Field(gt=0)
    legs: List[LegIn] = Field(min_length=2, max_length=MAX_COMBINATION_LEGS)
    bet_id: Optional[str] = None


class SettleRequest(BaseModel):
    bet: BetIn
    snapshot: Optional[Dict[str, Any]] = None
    require_finished: bool = False


class CombinationRequest(BaseModel):
    bet: CombinationBetIn
    snapshots: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    require_finished: bool = False


class BatchRequest(BaseModel):
    bets: List[BetIn] = Field(min_length=1)
    snapshots: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
#  Mapping to domain objects
# ═══════════════════════════════════════════════════════════════════════════════


def _event_key(event_id: Optional[Union[int, str]]) -> Optional[str]:
    return None if event_id is None else str(event_id)


def _to_selection(sel: SelectionIn) -> Selection:
    return Selection(
        market=sel.market,
        label=sel.label,
        threshold=sel.threshold,
        handicap=sel.handicap,
        participant=sel.participant,
        text=sel.text,
        description=sel.description,
        odd_id=None if sel.odd_id is None else str(sel.odd_id),
    )


def _to_bet(bet: BetIn) -> Bet:
    return Bet(
        stake=bet.stake,
        odds=bet.odds,
        selection=_to_selection(bet.selection),
        event_id=_event_key(bet.event_id),
        event_name=bet.event_name,
        inplay=bet.inplay,
        bet_id=bet.bet_id,
    )


def _to_leg(leg: LegIn) -> Leg:
    return Leg(
        selection=_to_selection(leg.selection),
        odds=leg.odds,
        event_id=_event_key(leg.event_id),
        event_name=leg.event_name,
        inplay=leg.inplay,
        status=leg.status,
        reason=leg.reason,
    )


def _to_combination(bet: CombinationBetIn) -> CombinationBet:
    return CombinationBet(stake=bet.stake, legs=[_to_leg(leg) for leg in bet.legs], bet_id=bet.bet_id)


def _fetch_snapshot(event_id: str) -> Dict[str, Any]:
    try:
        client = SportMonksClient()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        return client.get_fixture_snapshot(event_id)
    except (requests.RequestException, ValueError) as exc:
        raise HTTPException(status_code=502, detail=f"Could not fetch fixture {event_id}: {exc}") from exc


# ═══════════════════════════════════════════════════════════════════════════════
#  FastAPI app
# ═══════════════════════════════════════════════════════════════════════════════

def configure_logging() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(title="Bet Settlement API", version="1.0.0", lifespan=lifespan)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/markets/supported")
def supported_markets() -> dict:
    markets = market_table()
    return {"markets": markets, "count": len(markets)}


@app.post("/settle")
def settle_single(payload: SettleRequest) -> dict:
    try:
        bet = _to_bet(payload.bet)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    snapshot = payload.snapshot
    if snapshot is None:
        if bet.event_id is None:
            raise HTTPException(status_code=422, detail="Provide a snapshot or an event_id to fetch one.")
        snapshot = _fetch_snapshot(bet.event_id)

    return settle(bet, snapshot, require_finished=payload.require_finished).to_dict()


@app.post("/settle/combination")
def settle_combination_bet(payload: CombinationRequest) -> dict:
    try:
        bet = _to_combination(payload.bet)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    outcome = settle_combination(bet, payload.snapshots, require_finished=payload.require_finished)
    return outcome.to_dict()


@app.post("/settle/batch")
def settle_many(payload: BatchRequest) -> dict:
    try:
        bets = [_to_bet(b) for b in payload.bets]
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    outcomes = settle_batch(bets, payload.snapshots)
    return {
        "results": [
            {"bet_id": bet.bet_id, "event_id": bet.event_id, **outcome.to_dict()}
            for bet, outcome in zip(bets, outcomes)
        ],
        "count": len(outcomes),
    }
