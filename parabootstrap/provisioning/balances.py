from typing import Any, Union

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.multi_location import decode_account_id


def _account_key(account: Union[str, bytes]) -> str:
    return f"0x{decode_account_id(account).hex()}"


def _free(value: Any) -> int:
    if value is None:
        return 0
    if "data" in value:
        value = value["data"]
    return int(value.get("free", 0))


async def destination_free_balance(chain: ChainHandle, account: Union[str, bytes], asset_id: int) -> int:
    """
    Free balance of `account` in a multi-currency chain: System.Account for the native asset, Tokens.Accounts
    for everything else.
    """
    who = _account_key(account)
    if asset_id == CONSTANTS.NATIVE_ASSET_ID:
        value = await chain.query(CONSTANTS.SYSTEM_MODULE, CONSTANTS.ACCOUNT_STORAGE, [who])
    else:
        value = await chain.query(CONSTANTS.TOKENS_MODULE, CONSTANTS.TOKENS_ACCOUNTS_STORAGE, [who, asset_id])
    return _free(value)


async def origin_asset_balance(chain: ChainHandle, account: Union[str, bytes], asset_id: int) -> int:
    value = await chain.query(CONSTANTS.ASSETS_MODULE, CONSTANTS.ASSET_ACCOUNT_STORAGE,
                              [asset_id, _account_key(account)])
    if value is None:
        return 0
    return int(value.get("balance", 0))
