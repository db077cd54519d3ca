"""Metadata for supported liquidity platforms."""
from __future__ import annotations

PLATFORMS: dict[str, dict] = {
    "uniswapV3": {
        "id": "uniswapV3",
        "name": "Uniswap V3",
        "logo": "/Platform_Logos/uniswap.svg",
        "color": "#FF007A",
        "description": "Uniswap V3 concentrated liquidity positions",
        "minLiquidityAmount": 10,
        "features": {
            "concentratedLiquidity": True,
            "multipleFeeTiers": True,
        },
        # fee (hundredths of a bip) -> tick spacing
        "feeTiers": {
            100: {"spacing": 1},
            500: {"spacing": 10},
            3000: {"spacing": 60},
            10000: {"spacing": 200},
        },
        "minTick": -887272,
        "maxTick": 887272,
        "subgraphs": {
            1: {"id": "5zvR82QoaXYFyDEKLZ9t6v9adgnptxYpKpSbxtgVENFV", "queryType": "uniswap"},
            42161: {"id": "FQ6JYszEKApsBpAmiHesRsd9Ygc6mzmpNRANeVQFYoVX", "queryType": "messari"},
            1337: {"id": "FQ6JYszEKApsBpAmiHesRsd9Ygc6mzmpNRANeVQFYoVX", "queryType": "messari"},
        },
    },
}
