"""
XCM location codec.

A Location is `parents` hops up the consensus hierarchy followed by an ordered interior path of junctions.
Locations encode to the JSON shape substrate-interface expects for XCM V4 (`{"X2": [j1, j2]}` or `"Here"`) and
decode from both V3 (single-object `X1`) and V4 shapes. Junction order is kept exactly as given, since the
receiving chain matches the path literally.
"""
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

from scalecodec.utils.ss58 import ss58_decode

from parabootstrap.chain import chain_constants as CONSTANTS


class Parachain(NamedTuple):
    id: int

    def to_scale(self) -> Dict[str, Any]:
        return {"Parachain": self.id}


class PalletInstance(NamedTuple):
    id: int

    def to_scale(self) -> Dict[str, Any]:
        return {"PalletInstance": self.id}


class GeneralIndex(NamedTuple):
    id: int

    def to_scale(self) -> Dict[str, Any]:
        return {"GeneralIndex": self.id}


class AccountId32(NamedTuple):
    id: bytes
    network: Optional[Any] = None

    def to_scale(self) -> Dict[str, Any]:
        return {"AccountId32": {"network": self.network, "id": f"0x{self.id.hex()}"}}


Junction = Union[Parachain, PalletInstance, GeneralIndex, AccountId32]


class Location(NamedTuple):
    parents: int
    interior: Tuple[Junction, ...] = ()

    @property
    def is_here(self) -> bool:
        return len(self.interior) == 0

    def to_scale(self) -> Dict[str, Any]:
        validate_location(self)
        if self.is_here:
            interior: Any = "Here"
        else:
            interior = {f"X{len(self.interior)}": [junction.to_scale() for junction in self.interior]}
        return {"parents": self.parents, "interior": interior}

    def versioned(self, version: str = CONSTANTS.XCM_VERSION) -> Dict[str, Any]:
        return {version: self.to_scale()}

    @classmethod
    def from_scale(cls, value: Dict[str, Any]) -> "Location":
        if "parents" not in value and len(value) == 1:
            # versioned wrapper, e.g. {"V4": {...}}
            value = next(iter(value.values()))
        if not isinstance(value, dict) or "parents" not in value:
            raise ValueError(f"Not a location: {value}")
        location = cls(parents=int(value["parents"]), interior=_decode_interior(value.get("interior", "Here")))
        validate_location(location)
        return location


def validate_location(location: Location):
    if location.parents < 0:
        raise ValueError(f"Location parents must be non-negative, got {location.parents}")
    if len(location.interior) > CONSTANTS.MAX_JUNCTIONS:
        raise ValueError(f"Location interior has {len(location.interior)} junctions, at most "
                         f"{CONSTANTS.MAX_JUNCTIONS} are allowed")
    for junction in location.interior:
        if isinstance(junction, AccountId32):
            if len(junction.id) != CONSTANTS.ACCOUNT_ID_LENGTH:
                raise ValueError(f"AccountId32 must be {CONSTANTS.ACCOUNT_ID_LENGTH} bytes, got {len(junction.id)}")
        elif junction.id < 0:
            raise ValueError(f"{type(junction).__name__} id must be non-negative, got {junction.id}")


def _decode_interior(interior: Any) -> Tuple[Junction, ...]:
    if interior is None or interior == "Here":
        return ()
    if not isinstance(interior, dict) or len(interior) != 1:
        raise ValueError(f"Malformed location interior: {interior}")
    arity, junctions = next(iter(interior.items()))
    if arity == "Here":
        return ()
    if not isinstance(junctions, (list, tuple)):
        # V3 encodes X1 as a bare junction
        junctions = [junctions]
    if arity != f"X{len(junctions)}":
        raise ValueError(f"Interior {arity} carries {len(junctions)} junctions")
    return tuple(_decode_junction(junction) for junction in junctions)


def _decode_junction(value: Dict[str, Any]) -> Junction:
    if not isinstance(value, dict) or len(value) != 1:
        raise ValueError(f"Malformed junction: {value}")
    kind, payload = next(iter(value.items()))
    if kind == "Parachain":
        return Parachain(int(payload))
    if kind == "PalletInstance":
        return PalletInstance(int(payload))
    if kind == "GeneralIndex":
        return GeneralIndex(int(payload))
    if kind == "AccountId32":
        return AccountId32(id=decode_account_id(payload["id"]), network=payload.get("network"))
    raise ValueError(f"Unsupported junction {kind}")


def decode_account_id(account: Union[str, bytes]) -> bytes:
    """
    Accepts an SS58 address, a 0x-prefixed hex public key or raw bytes and returns the 32-byte account id.
    """
    if isinstance(account, (bytes, bytearray)):
        account_id = bytes(account)
    elif account.startswith("0x"):
        account_id = bytes.fromhex(account[2:])
    else:
        account_id = bytes.fromhex(ss58_decode(account))
    if len(account_id) != CONSTANTS.ACCOUNT_ID_LENGTH:
        raise ValueError(f"Account id must be {CONSTANTS.ACCOUNT_ID_LENGTH} bytes, got {len(account_id)}")
    return account_id


def sibling_sovereign_account(para_id: int) -> bytes:
    """
    Account controlled by sibling parachain `para_id` on another parachain: b"sibl" ++ u32le(para_id), zero padded.
    """
    prefix = CONSTANTS.SIBLING_ACCOUNT_PREFIX + para_id.to_bytes(4, "little")
    return prefix.ljust(CONSTANTS.ACCOUNT_ID_LENGTH, b"\x00")


def origin_asset_location(para_id: int, pallet_instance: int, asset_id: int) -> Location:
    """
    How a sibling parachain refers to asset `asset_id` of pallet `pallet_instance` on parachain `para_id`.
    """
    return Location(parents=1, interior=(Parachain(para_id), PalletInstance(pallet_instance), GeneralIndex(asset_id)))


def local_asset_location(pallet_instance: int, asset_id: int) -> Location:
    return Location(parents=0, interior=(PalletInstance(pallet_instance), GeneralIndex(asset_id)))


def parachain_location(para_id: int) -> Location:
    return Location(parents=1, interior=(Parachain(para_id),))


def relay_native_location() -> Location:
    return Location(parents=1)


def account_location(account: Union[str, bytes], network: Optional[Any] = None) -> Location:
    return Location(parents=0, interior=(AccountId32(id=decode_account_id(account), network=network),))


def asset_triple(location: Location) -> Tuple[int, int, int]:
    """
    Inverse of origin_asset_location: returns (para_id, pallet_instance, asset_id).
    """
    interior = location.interior
    if (location.parents != 1 or len(interior) != 3 or not isinstance(interior[0], Parachain)
            or not isinstance(interior[1], PalletInstance) or not isinstance(interior[2], GeneralIndex)):
        raise ValueError(f"{location} is not a sibling asset location")
    return interior[0].id, interior[1].id, interior[2].id


def fungible_asset(location: Location, amount: int) -> Dict[str, Any]:
    return {"id": location.to_scale(), "fun": {"Fungible": amount}}
