import decimal
import logging
from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence, Union

from substrateinterface import Keypair

from parabootstrap.chain import chain_constants as CONSTANTS
from parabootstrap.chain.batch_composer import BatchComposer
from parabootstrap.chain.chain_handle import ChainHandle
from parabootstrap.chain.data_types import ChainCall, TransactionOutcome
from parabootstrap.exceptions import InsufficientLiquidity, SubmissionRejected
from parabootstrap.logger import ParabootstrapLogger
from parabootstrap.provisioning.balances import destination_free_balance

PRICE_PRECISION = 78


class PoolQuote(NamedTuple):
    """
    One quote asset to pair against the base asset, priced in base units per quote unit.
    """
    asset_id: int
    price: Decimal = Decimal("1")


def quote_amount(base_amount: int, price: Union[Decimal, int, str]) -> int:
    """
    Quote side of a new pool: base_amount / price, truncated toward zero.
    """
    price = Decimal(price)
    if price <= 0:
        raise ValueError(f"Pool price must be positive, got {price}")
    with decimal.localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        return int(Decimal(base_amount) / price)


class PoolBootstrapper:
    _logger: Optional[ParabootstrapLogger] = None

    @classmethod
    def logger(cls) -> ParabootstrapLogger:
        if cls._logger is None:
            cls._logger = logging.getLogger(ParabootstrapLogger.logger_name_for_class(cls))
        return cls._logger

    @staticmethod
    def pool_call(asset_a: int, amount_a: int, asset_b: int, amount_b: int) -> ChainCall:
        return ChainCall(CONSTANTS.XYK_MODULE, "create_pool", {
            "asset_a": asset_a,
            "amount_a": amount_a,
            "asset_b": asset_b,
            "amount_b": amount_b,
        })

    async def check_liquidity(self, chain: ChainHandle, account: str, asset_ids: Sequence[int]):
        for asset_id in asset_ids:
            balance = await destination_free_balance(chain, account, asset_id)
            if balance <= 0:
                raise InsufficientLiquidity(f"{account} holds no asset {asset_id} on {chain.name}; "
                                            f"bridge or seed it before creating pools")

    async def create_pool(self,
                          chain: ChainHandle,
                          signer: Keypair,
                          base_asset: int,
                          quote: PoolQuote,
                          base_amount: int) -> TransactionOutcome:
        return await self.create_pools(chain, signer, base_asset, [quote], base_amount)

    async def create_pools(self,
                           chain: ChainHandle,
                           signer: Keypair,
                           base_asset: int,
                           quotes: Sequence[PoolQuote],
                           base_amount: int) -> TransactionOutcome:
        """
        One XYK pool per quote asset, all against `base_asset`, in a single atomic batch.
        """
        await self.check_liquidity(chain, signer.ss58_address, [base_asset] + [quote.asset_id for quote in quotes])
        calls: List[ChainCall] = []
        for quote in quotes:
            amount_b = quote_amount(base_amount, quote.price)
            self.logger().info(f"Pool {base_asset}/{quote.asset_id} on {chain.name}: {base_amount} / {amount_b}")
            calls.append(self.pool_call(base_asset, base_amount, quote.asset_id, amount_b))
        batch = BatchComposer.compose(calls)
        outcome = await chain.submit(batch.as_call(), signer)
        if not outcome.success:
            raise SubmissionRejected(f"Pool creation failed on {chain.name}: {outcome.error_description}")
        return outcome
