# solarmine/config/env.py
import os

# Environment constants to avoid typos in comparisons
ENV_DEV = "dev"
ENV_PROD = "prod"

# "dev" relaxes live-data cache lifetimes, defaulting to "prod"
APP_ENV = os.getenv("APP_ENV", ENV_PROD).lower()
