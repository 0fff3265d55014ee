"""
Raffle configuration.

This file defines typed configuration objects and helpers for:
- Network profiles (chain id, coordinator, fee, gas lane, callback gas, interval)
- Selecting a profile and overriding fields from environment variables
- Loading profiles from a JSON or YAML file

Built-in profiles mirror the networks the raffle is deployed to. Development
networks ("hardhat", "localhost") have no coordinator address: deployment
creates a local coordinator and subscription for them.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Optional

import yaml

from .constants import DEVELOPMENT_CHAINS, VRF_SUB_FUND_AMOUNT, to_wei
from .types import normalize_key_hash

# 30 gwei key hash; the same lane is used on every built-in network.
DEFAULT_GAS_LANE = "0xd89b2bf150e3b9e13446986e571fb9cab24b13cea0a43ea20a6049a85cc807cc"
DEFAULT_NETWORK = "hardhat"

# -------------------------
# Network profile
# -------------------------


@dataclass
class NetworkConfig:
    """
    Parameters needed to deploy one raffle on one network.

    entrance_fee: smallest-unit integer (wei)
    gas_lane: bytes32 key hash selecting the coordinator's max gas price
    subscription_id: coordinator subscription paying for requests (0 = create one)
    callback_gas_limit: gas budget for the randomness callback
    interval: seconds that must pass between draws
    vrf_coordinator: coordinator address; None on development networks
    block_confirmations: confirmations to wait for deployment transactions
    """

    name: str
    chain_id: int
    entrance_fee: int = field(default_factory=lambda: to_wei("0.01"))
    gas_lane: str = DEFAULT_GAS_LANE
    callback_gas_limit: int = 500_000
    interval: int = 30
    subscription_id: int = 0
    vrf_coordinator: Optional[str] = None
    block_confirmations: int = 1

    @property
    def is_development(self) -> bool:
        return self.name in DEVELOPMENT_CHAINS

    def validate(self) -> None:
        if not self.name:
            raise ValueError("network name must be set")
        if self.chain_id <= 0:
            raise ValueError("chain_id must be > 0")
        if self.entrance_fee < 0:
            raise ValueError("entrance_fee must be >= 0")
        normalize_key_hash(self.gas_lane)
        if self.callback_gas_limit <= 0:
            raise ValueError("callback_gas_limit must be > 0")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")
        if self.subscription_id < 0:
            raise ValueError("subscription_id must be >= 0")
        if self.block_confirmations < 1:
            raise ValueError("block_confirmations must be >= 1")
        if not self.is_development and not self.vrf_coordinator:
            raise ValueError(f"network {self.name!r} needs a vrf_coordinator address")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["is_development"] = self.is_development
        return data


NETWORKS: Dict[str, NetworkConfig] = {
    "hardhat": NetworkConfig(name="hardhat", chain_id=31337),
    "localhost": NetworkConfig(name="localhost", chain_id=31337),
    "rinkeby": NetworkConfig(
        name="rinkeby",
        chain_id=4,
        vrf_coordinator="0x6168499c0cFfCaCD319c818142124B7A15E857ab",
        subscription_id=0,
        block_confirmations=6,
    ),
}


def get_network(name: str) -> NetworkConfig:
    """Return a copy of a built-in profile."""
    try:
        return replace(NETWORKS[name])
    except KeyError:
        known = ", ".join(sorted(NETWORKS))
        raise ValueError(f"unknown network {name!r} (known: {known})") from None


# -------------------------
# Top-level config
# -------------------------


# Keys a file may set under `networks.<name>`; `name` comes from the mapping key.
_NETWORK_FIELDS = frozenset(f.name for f in fields(NetworkConfig)) - {"name"}


def _parse_amount(raw: Any) -> int:
    """Accept an int (wei) or a decimal ether string such as "0.01"."""
    if isinstance(raw, int):
        return raw
    s = str(raw).strip()
    if "." in s:
        return to_wei(s)
    return int(s)


@dataclass
class RaffleConfig:
    """
    network: the selected network profile
    sub_fund_amount: amount a freshly created local subscription is funded with
    """

    network: NetworkConfig = field(default_factory=lambda: get_network(DEFAULT_NETWORK))
    sub_fund_amount: int = VRF_SUB_FUND_AMOUNT

    def validate(self) -> None:
        self.network.validate()
        if self.sub_fund_amount < 0:
            raise ValueError("sub_fund_amount must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        return {"network": self.network.to_dict(), "sub_fund_amount": self.sub_fund_amount}

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    # -------------------------
    # Loaders
    # -------------------------

    @staticmethod
    def from_env(prefix: str = "RAFFLE_", network: Optional[str] = None) -> "RaffleConfig":
        """
        Select a network profile and override fields from environment variables.
        All variables are optional.

        Supported keys (examples):
          - RAFFLE_NETWORK=hardhat
          - RAFFLE_ENTRANCE_FEE=0.01            (ether) or 10000000000000000 (wei)
          - RAFFLE_GAS_LANE=0xd89b...07cc
          - RAFFLE_SUBSCRIPTION_ID=0
          - RAFFLE_CALLBACK_GAS_LIMIT=500000
          - RAFFLE_INTERVAL=30
          - RAFFLE_VRF_COORDINATOR=0x6168...57ab
          - RAFFLE_SUB_FUND_AMOUNT=30.0
        """

        def _get(name: str, cast: Any, default: Any) -> Any:
            key = prefix + name
            raw = os.getenv(key)
            if raw is None:
                return default
            try:
                return cast(raw)
            except Exception as e:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from e

        base = get_network(network or _get("NETWORK", str, DEFAULT_NETWORK))
        net = replace(
            base,
            entrance_fee=_get("ENTRANCE_FEE", _parse_amount, base.entrance_fee),
            gas_lane=_get("GAS_LANE", str, base.gas_lane),
            subscription_id=_get("SUBSCRIPTION_ID", int, base.subscription_id),
            callback_gas_limit=_get("CALLBACK_GAS_LIMIT", int, base.callback_gas_limit),
            interval=_get("INTERVAL", int, base.interval),
            vrf_coordinator=_get("VRF_COORDINATOR", str, base.vrf_coordinator),
        )
        cfg = RaffleConfig(
            network=net,
            sub_fund_amount=_get("SUB_FUND_AMOUNT", _parse_amount, VRF_SUB_FUND_AMOUNT),
        )
        cfg.validate()
        return cfg

    @staticmethod
    def from_file(path: str, network: Optional[str] = None) -> "RaffleConfig":
        """
        Load configuration from a JSON or YAML file. Example (YAML):

            network: rinkeby
            sub_fund_amount: "30.0"
            networks:
              rinkeby:
                subscription_id: 1234
                interval: 60

        Keys under `networks.<name>` override the built-in profile of that
        name; an unknown name defines a new profile (chain_id required).
        """
        data = _parse_json_or_yaml(_read_text(path), path)

        name = network or data.get("network", DEFAULT_NETWORK)
        overrides = dict((data.get("networks") or {}).get(name) or {})
        unknown = sorted(set(overrides) - _NETWORK_FIELDS)
        if unknown:
            raise ValueError(f"unknown keys for network {name!r} in {path!r}: {', '.join(unknown)}")
        if "entrance_fee" in overrides:
            overrides["entrance_fee"] = _parse_amount(overrides["entrance_fee"])

        if name in NETWORKS:
            net = replace(get_network(name), **overrides)
        else:
            if "chain_id" not in overrides:
                raise ValueError(f"network {name!r} is not built in and has no chain_id in {path!r}")
            net = NetworkConfig(name=name, **overrides)

        cfg = RaffleConfig(
            network=net,
            sub_fund_amount=_parse_amount(data.get("sub_fund_amount", VRF_SUB_FUND_AMOUNT)),
        )
        cfg.validate()
        return cfg


# -------------------------
# Utilities
# -------------------------


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _parse_json_or_yaml(text: str, path_hint: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse {path_hint!r} as JSON or YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path_hint!r} must contain a mapping at the top level")
    return data


__all__ = [
    "NetworkConfig",
    "RaffleConfig",
    "NETWORKS",
    "DEFAULT_NETWORK",
    "DEFAULT_GAS_LANE",
    "get_network",
]
