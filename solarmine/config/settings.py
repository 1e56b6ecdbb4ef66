# solarmine/config/settings.py

import os

from solarmine.config.env import APP_ENV, ENV_DEV

# --- Bitcoin network constants ---

SECONDS_PER_DAY = 86_400
DEFAULT_BLOCK_TIME_S = 600.0  # Bitcoin target block interval
HASHES_PER_DIFFICULTY_UNIT = 2**32  # expected hashes per block at difficulty 1
INITIAL_BLOCK_SUBSIDY_BTC = 50.0
HALVING_INTERVAL_BLOCKS = 210_000

# --- Live data / network constants ---
# Blockchain.info - est. 2011, Ben Reeves (UK), now Blockchain.com (not FOSS)
# Mempool.space - est. 2020, Self-hostable open-source Bitcoin explorer
MEMPOOL_BLOCKTIP_URL = os.getenv(
    "MEMPOOL_BLOCKTIP_URL", "https://mempool.space/api/v1/blocks/tip-height"
)
BLOCKCHAIN_DIFFICULTY_URL = os.getenv(
    "BLOCKCHAIN_DIFFICULTY_URL", "https://blockchain.info/q/getdifficulty"
)
COINGECKO_SIMPLE_PRICE_URL = os.getenv(
    "COINGECKO_SIMPLE_PRICE_URL", "https://api.coingecko.com/api/v3/simple/price"
)
COINBASE_SPOT_PRICE_URL = "https://api.coinbase.com/v2/prices/spot"

# Requests / caching config
LIVE_DATA_REQUEST_TIMEOUT_S = float(os.getenv("LIVE_DATA_REQUEST_TIMEOUT_S", "10"))
LIVE_DATA_CACHE_TTL_S = float(
    os.getenv(
        "LIVE_DATA_CACHE_TTL_S",
        str(60 * 60 * 24 if APP_ENV == ENV_DEV else 10 * 60),
    )
)  # 24h in dev, 10m in prod

# Optional: identify yourself nicely to public APIs
LIVE_DATA_USER_AGENT = "SolarMine/0.1 (projection engine)"

# --- Fallback static assumptions (used when live data fails) ---

# Post-2024 halving subsidy
DEFAULT_BLOCK_SUBSIDY_BTC = 3.125
DEFAULT_BTC_PRICE_USD = 90000.0
DEFAULT_NETWORK_DIFFICULTY = 150_000_000_000_000
DEFAULT_FEE_BTC_PER_BLOCK = 0.025

HALVING_INTERVAL_YEARS = 4
# Stored as tuple to avoid datetime import in settings
NEXT_HALVING_DATE = (2028, 4, 1)  # YYYY, M, D

# --- Orchestrator ---

# Bounded wait for one date's external data (market + environment)
DATA_FETCH_TIMEOUT_S = float(os.getenv("DATA_FETCH_TIMEOUT_S", "30"))
PROJECTION_GRANULARITIES = ("daily", "weekly", "monthly")
# Worker pool size for independent scenario runs (None = executor default)
PROJECTION_MAX_WORKERS = None

# --- Equipment ageing ---

DAYS_PER_YEAR = 365.25

# --- Solar / environment ---

STC_TEMPERATURE_C = 25.0  # standard test conditions cell temperature
STC_IRRADIANCE_W_M2 = 1000.0
NOCT_C = 45.0  # nominal operating cell temperature
NOCT_AMBIENT_C = 20.0
NOCT_IRRADIANCE_W_M2 = 800.0
DEFAULT_PERFORMANCE_RATIO = 0.80
# Fraction of sun hours lost per 100 points of additional cloud cover
CLOUD_SUN_HOURS_SENSITIVITY = 0.75

# Representative calendar month per season (northern hemisphere);
# southern hemisphere locations are shifted by six months.
SEASON_REPRESENTATIVE_MONTH = {
    "winter": 1,
    "spring": 4,
    "summer": 7,
    "autumn": 10,
}

# --- Storage ---

INITIAL_STATE_OF_CHARGE_FRACTION = 0.5

# --- Financial defaults ---

DEFAULT_DISCOUNT_RATE = 0.08  # annual
DEFAULT_ELECTRICITY_ESCALATION = 0.0  # annual
DEFAULT_INSURANCE_RATE_ANNUAL = 0.005  # fraction of total investment
DEFAULT_PROPERTY_TAX_RATE_ANNUAL = 0.0  # fraction of total investment

# --- CapEx assumptions ---

# Racking, cabling, labour and commissioning as a share of equipment cost
INSTALLATION_COST_FRACTION = 0.10

# --- Opex assumptions (annual) ---

MAINTENANCE_COST_PER_MINER_PA_USD = 50.0
FIRMWARE_LICENSE_PER_MINER_PA_USD = 20.0
SOLAR_OM_COST_PER_KW_PA_USD = 20.0
STORAGE_OM_COST_PER_KWH_PA_USD = 5.0

# --- Numerical solvers ---

# IRR is solved on the monthly rate by bisection inside this bracket
IRR_RATE_LOW = -0.99
IRR_RATE_HIGH = 1.0
IRR_MAX_ITERATIONS = 200
IRR_TOLERANCE = 1e-10
# Grid used to find a finite sign change before bisecting
IRR_SCAN_STEPS = 200

BREAK_EVEN_MAX_ITERATIONS = 200
BREAK_EVEN_TOLERANCE = 1e-9
BREAK_EVEN_MULTIPLIER_MAX = 1e6

# --- Scenario modelling defaults ---

# Price shocks (% change)
SCENARIO_BASE_PRICE_PCT = 0.00
SCENARIO_BEST_PRICE_PCT = 0.20
SCENARIO_WORST_PRICE_PCT = -0.20

# Network difficulty level shocks (percentage applied to difficulty level, not growth)
# e.g. +20.0 = difficulty 20% harder -> BTC / 1.20; -10.0 = 10% easier -> BTC / 0.90
SCENARIO_BASE_DIFFICULTY_LEVEL_SHOCK_PCT = 0.0
SCENARIO_BEST_DIFFICULTY_LEVEL_SHOCK_PCT = -10.0
SCENARIO_WORST_DIFFICULTY_LEVEL_SHOCK_PCT = 20.0

# Electricity cost shocks
SCENARIO_BASE_ELECTRICITY_PCT = 0.00
SCENARIO_BEST_ELECTRICITY_PCT = -0.10
SCENARIO_WORST_ELECTRICITY_PCT = 0.20

# --- Monte Carlo risk analysis ---

MONTE_CARLO_ITERATIONS = 200
MONTE_CARLO_SEED = 42
# Log-normal sigma of the whole-horizon price / difficulty level multipliers
MONTE_CARLO_PRICE_VOLATILITY = 0.50
MONTE_CARLO_DIFFICULTY_VOLATILITY = 0.25
MONTE_CARLO_PERCENTILES = (5, 25, 50, 75, 95)
