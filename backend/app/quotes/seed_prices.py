"""Seed prices, listings and per-symbol parameters for the simulated exchange."""

# Starting last-trade prices for the simulated listing
SEED_PRICES: dict[str, float] = {
    "ETHBTC": 0.0330,
    "LTCBTC": 0.0021,
    "XMRBTC": 0.0042,
    "BTCUSD": 43000.00,
    "ETHUSD": 2300.00,
    "LTCUSD": 72.00,
    "XMRUSD": 160.00,
    "DOGEUSD": 0.085,
}

# symbol -> (base currency, quote currency). Fees are charged in the quote currency.
SYMBOL_PAIRS: dict[str, tuple[str, str]] = {
    "ETHBTC": ("ETH", "BTC"),
    "LTCBTC": ("LTC", "BTC"),
    "XMRBTC": ("XMR", "BTC"),
    "BTCUSD": ("BTC", "USD"),
    "ETHUSD": ("ETH", "USD"),
    "LTCUSD": ("LTC", "USD"),
    "XMRUSD": ("XMR", "USD"),
    "DOGEUSD": ("DOGE", "USD"),
}

CURRENCY_NAMES: dict[str, str] = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "LTC": "Litecoin",
    "XMR": "Monero",
    "DOGE": "Dogecoin",
    "USD": "US Dollar",
}

# Per-symbol GBM parameters
# sigma: annualized volatility (higher = more price movement)
# mu: annualized drift / expected return
SYMBOL_PARAMS: dict[str, dict[str, float]] = {
    "ETHBTC": {"sigma": 0.45, "mu": 0.0},
    "LTCBTC": {"sigma": 0.55, "mu": -0.02},
    "XMRBTC": {"sigma": 0.55, "mu": 0.0},
    "BTCUSD": {"sigma": 0.60, "mu": 0.10},
    "ETHUSD": {"sigma": 0.75, "mu": 0.10},
    "LTCUSD": {"sigma": 0.85, "mu": 0.05},
    "XMRUSD": {"sigma": 0.80, "mu": 0.05},
    "DOGEUSD": {"sigma": 1.20, "mu": 0.0},  # Very high volatility
}

# Default parameters for symbols fetched outside the listing
DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.80, "mu": 0.0}

# Correlation coefficients for the simulator's Cholesky decomposition
SAME_BASE_CORR = 0.6  # ETHBTC / ETHUSD move together
SAME_QUOTE_CORR = 0.45  # USD pairs share dollar moves
CROSS_CORR = 0.25  # Everything else, including symbols outside the listing

# Half the bid/ask spread as a fraction of the last price
HALF_SPREAD = 0.0005
