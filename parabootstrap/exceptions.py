"""
Exceptions used in the parabootstrap codebase.
"""


class ParabootstrapBaseException(Exception):
    """
    Most errors raised in parabootstrap should inherit this class so we can
    differentiate them from errors that come from dependencies.
    """


class ChainConnectionError(ParabootstrapBaseException, ConnectionError):
    """
    The chain node is unreachable. Fatal, never retried.
    """


class SubmissionRejected(ParabootstrapBaseException):
    """
    The node refused the extrinsic (stale nonce, invalid transaction) or the batch failed to dispatch.
    Retrying is only safe after refreshing account state.
    """


class AlreadyRegistered(SubmissionRejected):
    """
    A location is already mapped to a local asset on the destination chain.
    """


class InclusionTimeout(ParabootstrapBaseException):
    """
    The extrinsic was accepted but no in-block status arrived in time. It may still land, so inspect
    chain state before resubmitting.
    """


class XcmSendRejected(ParabootstrapBaseException):
    """
    The origin chain could not send the reserve transfer (fee reserve, unknown destination, bad location).
    """


class ControlCommandFailed(ParabootstrapBaseException):
    """
    A node debug RPC (dev_*) returned an error.
    """


class BlockProductionError(ControlCommandFailed):
    """
    Forcing block production failed or the requested height never became observable.
    """


class IdentifierPredictionMismatch(ParabootstrapBaseException):
    """
    The identifier assigned on chain does not match what was allocated before submission.
    """


class ChainStateError(ParabootstrapBaseException):
    """
    A storage item the orchestrator depends on is missing or malformed.
    """


class InsufficientLiquidity(ParabootstrapBaseException):
    """
    The signer holds no spendable balance of an asset a pool needs.
    """


class DeliveryTimeout(ParabootstrapBaseException):
    """
    Bridged funds did not show up on the destination chain within the configured block rounds.
    """


class MetadataConflict(ParabootstrapBaseException):
    """
    A persisted cross-chain record would be overwritten with different content.
    """


class PrivilegedInjectionDisabled(ParabootstrapBaseException):
    """
    The root scheduler injection path was requested without `allow_privileged_injection`.
    """
