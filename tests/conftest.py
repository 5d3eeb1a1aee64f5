import os


# Default values allow settings to load in local/unit contexts without a .env file.
TEST_ENV_DEFAULTS = {
    "ENGAGE_SERVER": "5",
    "ENGAGE_USERNAME": "api@example.com",
    "ENGAGE_PASSWORD": "secret",
}

for env_key, env_value in TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(env_key, env_value)
