"""Fixed field layouts for every supported event kind.

Concentrated-liquidity pool: Mint / Burn / Swap.
NonFungiblePositionManager: Transfer (position NFT) / IncreaseLiquidity /
DecreaseLiquidity.
ERC20 pool tokens: Transfer (fungible).

Example
-------
>>> from liqwatch.core.models import EventKind
>>> layout_for(EventKind.SWAP).signature
'Swap(address,address,int256,int256,uint160,uint128,int24)'
"""

from __future__ import annotations

from types import MappingProxyType

from liqwatch.core.models import EventKind
from liqwatch.decoding.specs import EventLayout, parse_signature

SIGNATURES: dict[EventKind, str] = {
    EventKind.TRANSFER: (
        "Transfer(address indexed from, address indexed to, uint256 indexed tokenId)"
    ),
    EventKind.TOKEN_TRANSFER: (
        "Transfer(address indexed from, address indexed to, uint256 value)"
    ),
    EventKind.MINT: (
        "Mint(address sender, address indexed owner, int24 indexed tickLower, int24 indexed tickUpper, "
        "uint128 amount, uint256 amount0, uint256 amount1)"
    ),
    EventKind.BURN: (
        "Burn(address indexed owner, int24 indexed tickLower, int24 indexed tickUpper, "
        "uint128 amount, uint256 amount0, uint256 amount1)"
    ),
    EventKind.SWAP: (
        "Swap(address indexed sender, address indexed recipient, int256 amount0, int256 amount1, "
        "uint160 sqrtPriceX96, uint128 liquidity, int24 tick)"
    ),
    EventKind.INCREASE_LIQUIDITY: (
        "IncreaseLiquidity(uint256 indexed tokenId, uint128 liquidity, uint256 amount0, uint256 amount1)"
    ),
    EventKind.DECREASE_LIQUIDITY: (
        "DecreaseLiquidity(uint256 indexed tokenId, uint128 liquidity, uint256 amount0, uint256 amount1)"
    ),
}

LAYOUTS: MappingProxyType[EventKind, EventLayout] = MappingProxyType(
    {kind: parse_signature(sig) for kind, sig in SIGNATURES.items()}
)


def layout_for(kind: EventKind) -> EventLayout:
    return LAYOUTS[kind]
