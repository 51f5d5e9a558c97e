from __future__ import annotations

import os

from hypothesis import HealthCheck, settings

# Reproducible by default; WCNT_HYPOTHESIS_PROFILE=wcnt-dev explores more inputs.
settings.register_profile(
    "wcnt-ci",
    derandomize=True,
    max_examples=50,
    deadline=None,
    print_blob=True,
)
settings.register_profile(
    "wcnt-dev",
    max_examples=300,
    deadline=None,
    suppress_health_check=(HealthCheck.too_slow,),
)
settings.load_profile(os.environ.get("WCNT_HYPOTHESIS_PROFILE", "wcnt-ci"))
