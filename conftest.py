"""Global pytest configuration."""

import os

# Keep a developer's .env or exported overrides out of the test run
for key in [k for k in os.environ if k.startswith("TRIPCORE_")]:
    del os.environ[key]
