DEFAULT_ORIGIN_URL = "ws://localhost:8001"
DEFAULT_DESTINATION_URL = "ws://localhost:8000"
DEFAULT_RELAY_URL = "ws://localhost:8002"

# Node control (Chopsticks dev RPC)
NEW_BLOCK_METHOD = "dev_newBlock"
SET_BLOCK_BUILD_MODE_METHOD = "dev_setBlockBuildMode"
SET_STORAGE_METHOD = "dev_setStorage"
CHAIN_HEADER_METHOD = "chain_getHeader"

# Extrinsic submission
SUBMIT_AND_WATCH_METHOD = "author_submitAndWatchExtrinsic"
UNWATCH_EXTRINSIC_METHOD = "author_unwatchExtrinsic"
TX_STATUS_IN_BLOCK = "inBlock"
TX_STATUS_ERRORS = ("dropped", "invalid", "usurped", "finalityTimeout")

# Timing, in seconds
DEFAULT_PACER_INTERVAL = 6.0
DEFAULT_INCLUSION_TIMEOUT = 60.0
DEFAULT_ADVANCE_TIMEOUT = 30.0
ADVANCE_POLL_INTERVAL = 0.1
INCLUSION_POLL_INTERVAL = 0.5
QUERY_RETRY_COUNT = 3
QUERY_RETRY_INTERVAL = 0.5

PRODUCTION_ERRORS_QUEUE_SIZE = 100

# Pallets and calls
UTILITY_MODULE = "Utility"
BATCH_ALL_FUNCTION = "batch_all"

SYSTEM_MODULE = "System"
ACCOUNT_STORAGE = "Account"

ASSETS_MODULE = "Assets"
NEXT_ASSET_ID_STORAGE = "NextAssetId"
ASSET_METADATA_STORAGE = "Metadata"
ASSET_ACCOUNT_STORAGE = "Account"

ASSET_REGISTRY_MODULE = "AssetRegistry"
LOCATION_ASSETS_STORAGE = "LocationAssets"

TOKENS_MODULE = "Tokens"
TOKENS_ACCOUNTS_STORAGE = "Accounts"

POLKADOT_XCM_MODULE = "PolkadotXcm"
XCM_ATTEMPTED_EVENT = "Attempted"
XCM_OUTCOME_COMPLETE = "Complete"

XYK_MODULE = "XYK"
MULTI_TRANSACTION_PAYMENT_MODULE = "MultiTransactionPayment"

SCHEDULER_STORAGE_KEY = "scheduler"
SCHEDULER_AGENDA_KEY = "agenda"
ROOT_ORIGIN = {"system": "Root"}

# XCM
XCM_VERSION = "V4"
UNLIMITED_WEIGHT = "Unlimited"
MAX_JUNCTIONS = 8
FEE_ASSET_ITEM = 1
DEFAULT_FEE_ASSET_AMOUNT = 1_000_000_000
SIBLING_ACCOUNT_PREFIX = b"sibl"
ACCOUNT_ID_LENGTH = 32

# Asset Hub / Hydration defaults
ASSET_HUB_PARA_ID = 1000
ASSETS_PALLET_INSTANCE = 50
HYDRATION_PARA_ID = 2034
HYDRATION_EXTERNAL_ID_OFFSET = 1_000_000
NATIVE_ASSET_ID = 0
DEFAULT_MIN_BALANCE = 1000
