"""Pydantic models for reward plans, participation records and results."""

from datetime import date, timedelta
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from validator_rewards.constants import AVAILABLE_FEATURES, Feature
from validator_rewards.core.amount import Amount
from validator_rewards.core.period import Period
from validator_rewards.core.units import gwei_to_eth, wei_to_eth
from validator_rewards.validators import (
    normalize_execution_address,
    normalize_public_key,
)


# === Plan configuration ===


class Tier(BaseModel):
    """Reward tier: APR boost applied while the network stays under a bound.

    ``max_effective_balance`` is authored in whole ETH of effective balance.
    """

    model_config = ConfigDict(frozen=True)

    max_effective_balance: int = Field(..., description="Upper bound (inclusive), ETH")
    apr_boost: Amount = Field(..., description="Multiplier applied to the base APR")


class Criteria(BaseModel):
    """Minimum daily activity for a validator day to count as active."""

    model_config = ConfigDict(frozen=True)

    min_attestations_per_day: int = Field(..., gt=0)
    min_decideds_per_day: int = Field(..., gt=0)


def _normalize_redirects(
    redirects: dict[str, str], normalize_key, kind: str
) -> dict[str, str]:
    normalized: dict[str, str] = {}
    for source, target in redirects.items():
        key = normalize_key(source)
        if key in normalized:
            raise ValueError(f"duplicate {kind} redirect key: {key}")
        normalized[key] = normalize_execution_address(target)
    return normalized


class Mechanics(BaseModel):
    """Rule set in effect since a given period."""

    model_config = ConfigDict(frozen=True)

    since: Period | None = None
    criteria: Criteria | None = None
    tiers: list[Tier] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    owner_redirects: dict[str, str] = Field(default_factory=dict)
    owner_redirects_file: str | None = None
    validator_redirects: dict[str, str] = Field(default_factory=dict)
    validator_redirects_file: str | None = None
    network_fee_address: str | None = None

    @field_validator("owner_redirects", mode="after")
    @classmethod
    def validate_owner_redirects(cls, v: dict[str, str]) -> dict[str, str]:
        return _normalize_redirects(v, normalize_execution_address, "owner")

    @field_validator("validator_redirects", mode="after")
    @classmethod
    def validate_validator_redirects(cls, v: dict[str, str]) -> dict[str, str]:
        return _normalize_redirects(v, normalize_public_key, "validator")

    @field_validator("network_fee_address")
    @classmethod
    def validate_network_fee_address(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return normalize_execution_address(v)

    @field_validator(
        "tiers", "features", "owner_redirects", "validator_redirects", mode="before"
    )
    @classmethod
    def empty_as_default(cls, v, info):
        # A bare `features:` key in YAML yields None
        if v is not None:
            return v
        return {} if info.field_name.endswith("redirects") else []

    def feature_enabled(self, feature: Feature | str) -> bool:
        name = feature.value if isinstance(feature, Feature) else feature
        return name in self.features

    def invalid_features(self) -> list[str]:
        return [f for f in self.features if f not in AVAILABLE_FEATURES]

    def resolve_recipient(self, owner_address: str, public_key: str | None = None) -> str:
        """
        Address that receives rewards earned by a validator.

        Validator redirects take precedence over owner redirects; without
        a redirect the owner receives its own rewards.
        """
        owner = normalize_execution_address(owner_address)
        if public_key is not None:
            key = normalize_public_key(public_key)
            if key in self.validator_redirects:
                return self.validator_redirects[key]
        return self.owner_redirects.get(owner, owner)


class Round(BaseModel):
    """Macro-economic inputs for one monthly round."""

    model_config = ConfigDict(frozen=True)

    period: Period | None = None
    eth_apr: Amount = Field(default_factory=Amount.zero, description="Annual base-asset APR")
    ssv_eth: Amount = Field(default_factory=Amount.zero, description="Reward token price in base asset")
    network_fee: Amount = Field(default_factory=Amount.zero, description="Per-validator fee budget")

    @field_validator("eth_apr", "ssv_eth", "network_fee", mode="before")
    @classmethod
    def empty_as_zero(cls, v):
        # Rounds are listed ahead of time with blank rates
        return Amount.zero() if v is None else v

    def is_priced(self) -> bool:
        return self.eth_apr.is_positive() and self.ssv_eth.is_positive()


# === Participation records ===


class Participation(BaseModel):
    """
    Per-entity, per-period activity aggregate.

    Effective balance sums are Gwei-days; ``reward`` and ``fee_deduction``
    are wei of the reward token, filled in by the rewards engine.
    """

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
    )

    active_days: int = Field(default=0, ge=0)
    registered_days: int = Field(default=0, ge=0)
    total_active_effective_balance: int = Field(default=0, ge=0)
    total_registered_effective_balance: int = Field(default=0, ge=0)
    reward: int = Field(default=0, ge=0)
    fee_deduction: int = Field(default=0, ge=0)

    @property
    def identity(self) -> str:
        raise NotImplementedError

    @property
    def reward_amount(self) -> Amount:
        return wei_to_eth(self.reward)

    @property
    def fee_deduction_amount(self) -> Amount:
        return wei_to_eth(self.fee_deduction)


class ValidatorParticipation(Participation):
    owner_address: str
    recipient_address: str | None = None
    public_key: str

    @field_validator("owner_address", "recipient_address")
    @classmethod
    def validate_address(cls, v: str | None) -> str | None:
        return None if v is None else normalize_execution_address(v)

    @field_validator("public_key")
    @classmethod
    def validate_public_key(cls, v: str) -> str:
        return normalize_public_key(v)

    @property
    def identity(self) -> str:
        return self.public_key


class OwnerParticipation(Participation):
    owner_address: str
    validators: int = Field(default=0, ge=0)
    is_network_fee: bool = False

    @field_validator("owner_address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return normalize_execution_address(v)

    @property
    def identity(self) -> str:
        return self.owner_address


class RecipientParticipation(Participation):
    recipient_address: str
    is_deployer: bool = False
    is_network_fee: bool = False

    @field_validator("recipient_address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return normalize_execution_address(v)

    @property
    def identity(self) -> str:
        return self.recipient_address


# === Results ===


class RewardRates(NamedTuple):
    """Per-validator reward rates in wei."""

    daily: int
    monthly: int
    annual: int


class RewardSplit(NamedTuple):
    """Net reward and network fee deduction for one entity, in wei."""

    reward: int
    fee_deduction: int


class PerformanceWindow(BaseModel):
    """Inclusive range of days with synced validator performance."""

    model_config = ConfigDict(frozen=True)

    earliest: date
    latest: date

    @model_validator(mode="after")
    def validate_order(self) -> "PerformanceWindow":
        if self.earliest > self.latest:
            raise ValueError(
                "invalid state: earliest validator performance "
                f"({self.earliest}) is after latest ({self.latest})"
            )
        return self

    def covers(self, period: Period) -> bool:
        """True when every day of the period has performance data."""
        return (
            self.earliest <= period.first_day()
            and period.last_day() < self.latest + timedelta(days=1)
        )


class RoundSummary(BaseModel):
    """Log-worthy per-round figures, rendered as exact decimal strings."""

    model_config = ConfigDict(frozen=True)

    period: Period
    validators: int
    total_effective_balance: Amount = Field(..., description="Average daily effective balance, ETH")
    tier: int = Field(..., description="Max effective balance of the resolved tier")
    network_fee: Amount
    daily_reward: Amount
    monthly_reward: Amount
    annual_reward: Amount


class RoundResult(BaseModel):
    """Enriched participation rows of one processed round."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    round: Round
    tier: Tier
    rates: RewardRates
    validators: list[ValidatorParticipation]
    owners: list[OwnerParticipation]
    recipients: list[RecipientParticipation]
    summary: RoundSummary
    cumulative_rewards: dict[str, int] = Field(
        default_factory=dict,
        description="Recipient address -> wei earned up to and including this round",
    )

    @property
    def period(self) -> Period:
        return self.round.period


class ParticipationTotal(BaseModel):
    """Cumulative participation of one entity across all processed rounds."""

    model_config = ConfigDict(frozen=True)

    identity: str
    owner_address: str | None = None
    recipient_address: str | None = None
    public_key: str | None = None
    validators: int | None = None
    is_deployer: bool | None = None
    is_network_fee: bool = False
    active_days: int
    registered_days: int
    total_active_effective_balance: Amount = Field(..., description="ETH-days")
    total_registered_effective_balance: Amount = Field(..., description="ETH-days")
    reward: Amount
    fee_deduction: Amount
    reward_wei: int

    @classmethod
    def from_participation(cls, record: Participation) -> "ParticipationTotal":
        return cls(
            identity=record.identity,
            owner_address=getattr(record, "owner_address", None),
            recipient_address=getattr(record, "recipient_address", None),
            public_key=getattr(record, "public_key", None),
            validators=getattr(record, "validators", None),
            is_deployer=getattr(record, "is_deployer", None),
            is_network_fee=getattr(record, "is_network_fee", False),
            active_days=record.active_days,
            registered_days=record.registered_days,
            total_active_effective_balance=gwei_to_eth(record.total_active_effective_balance),
            total_registered_effective_balance=gwei_to_eth(
                record.total_registered_effective_balance
            ),
            reward=wei_to_eth(record.reward),
            fee_deduction=wei_to_eth(record.fee_deduction),
            reward_wei=record.reward,
        )


class Exclusion(BaseModel):
    """A validator day left out of rewards, with the reason it was dropped."""

    model_config = ConfigDict(frozen=True)

    day: date
    from_epoch: int = Field(..., ge=0)
    to_epoch: int = Field(..., ge=0)
    public_key: str
    start_beacon_status: str = ""
    end_beacon_status: str = ""
    events: str = ""
    exclusion_reason: str

    @field_validator("public_key")
    @classmethod
    def validate_public_key(cls, v: str) -> str:
        return normalize_public_key(v)

    @field_validator("start_beacon_status", "end_beacon_status", "events", mode="before")
    @classmethod
    def empty_as_blank(cls, v):
        return "" if v is None else v

    @model_validator(mode="after")
    def validate_epochs(self) -> "Exclusion":
        if self.from_epoch > self.to_epoch:
            raise ValueError(
                f"exclusion epochs out of order: {self.from_epoch} > {self.to_epoch}"
            )
        return self


class RewardsReport(BaseModel):
    """Outcome of a full rewards run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    rounds: list[RoundResult]
    total_by_validator: list[ParticipationTotal]
    total_by_owner: list[ParticipationTotal]
    total_by_recipient: list[ParticipationTotal]
    exclusions: list[Exclusion] = Field(default_factory=list)

    def cumulative_rewards(self) -> dict[str, int]:
        """Recipient address -> total wei over every processed round."""
        return {total.identity: total.reward_wei for total in self.total_by_recipient}
