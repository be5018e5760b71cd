from __future__ import annotations

# Default deployment watched when no contracts file is given (Conflux eSpace).
POOL_ADDRESS             = "0x48aa364f1bcb5e621b16748251205a41218b11a8"
POSITION_MANAGER_ADDRESS = "0xE8F658fB945052003f0AFd931b1C8eC357FC3fe8"
USDC_ADDRESS             = "0x349298B0E20DF67dEFd6eFb8F3170cF4a32722EF"
USDT_ADDRESS             = "0x7d682e65EFC5C13Bf4E394B8f376C48e6baE0355"

DEFAULT_PERIOD_S = 30.0
DEFAULT_LOOKBACK = 500
