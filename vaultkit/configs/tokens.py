"""ERC-20 tokens the vaults can hold, keyed by display symbol."""
from __future__ import annotations

TOKENS: dict[str, dict] = {
    "USDC": {
        "name": "USD Coin",
        "symbol": "USDC",
        "decimals": 6,
        "coingeckoId": "usd-coin",
        "addresses": {
            1: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            42161: "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
            1337: "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        },
        "logoURI": "/Token_Logos/USDC.svg",
        "isStablecoin": True,
    },
    "USD₮0": {
        "name": "Tether USD",
        "symbol": "USDT",
        "decimals": 6,
        "coingeckoId": "tether",
        "addresses": {
            1: "0xdAC17F958D2ee523a2206206994597C13D831ec7",
            42161: "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
            1337: "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
        },
        "logoURI": "/Token_Logos/USDT.svg",
        "isStablecoin": True,
    },
    "DAI": {
        "name": "Dai Stablecoin",
        "symbol": "DAI",
        "decimals": 18,
        "coingeckoId": "dai",
        "addresses": {
            1: "0x6B175474E89094C44Da98b954EedeAC495271d0F",
            42161: "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
            1337: "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
        },
        "logoURI": "/Token_Logos/DAI.svg",
        "isStablecoin": True,
    },
    "FRAX": {
        "name": "Frax",
        "symbol": "FRAX",
        "decimals": 18,
        "coingeckoId": "frax",
        "addresses": {
            1: "0x853d955aCEf822Db058eb8505911ED77F175b99e",
            42161: "0x17FC002b466eEc40DaE837Fc4bE5c67993ddBd6F",
            1337: "0x17FC002b466eEc40DaE837Fc4bE5c67993ddBd6F",
        },
        "logoURI": "/Token_Logos/FRAX.svg",
        "isStablecoin": True,
    },
    "BUSD": {
        "name": "Binance USD",
        "symbol": "BUSD",
        "decimals": 18,
        "coingeckoId": "binance-usd",
        "addresses": {
            1: "0x4Fabb145d64652a948d72533023f6E7A623C7C53",
            42161: "0x31190254504622cEFdFA55a7d3d272e6462629a2",
            1337: "0x31190254504622cEFdFA55a7d3d272e6462629a2",
        },
        "logoURI": "/Token_Logos/BUSD.svg",
        "isStablecoin": True,
    },
    "WETH": {
        "name": "Wrapped Ether",
        "symbol": "WETH",
        "decimals": 18,
        "coingeckoId": "ethereum",
        "addresses": {
            1: "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
            42161: "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
            1337: "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        },
        "logoURI": "/Token_Logos/ETH.svg",
        "isStablecoin": False,
    },
}
