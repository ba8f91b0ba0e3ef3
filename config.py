"""
=============================================================================
CONFIGURATION FOR THE A2E2 FEEDBACK ENGINE (config.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This file holds the runtime knobs of the engine in one place. Other modules
read from it; nothing here is secret. Values come from the environment (your
.env file or system variables) so a deployment can tune spacing and logging
without touching code.

The detection thresholds themselves are NOT here: they live in
a2e2/thresholds.py as a static, versioned table. This file only covers the
settings around it.

MAIN GROUPS OF SETTINGS:
------------------------
  1. Rate limiting: Global spacing between any two events for a participant.
  2. Smoothing/buffer: EMA alpha, sample pruning horizon, history sizes.
  3. Meeting scope: Whether the host is evaluated like any other participant.
  4. Diagnostics: Optional logging of why a detector rejected a tick.

HOW VALUES ARE CHOSEN:
---------------------
  - Environment variables (e.g. A2E2_EMA_ALPHA) override everything.
  - If an env var is not set, we use the default the engine was tuned with.
=============================================================================
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")


# ============================================================================
# RATE LIMITING
# ============================================================================
# Minimum gap (ms) between any two feedback events for the same participant,
# regardless of type. Every successful detection stamps last_feedback_at.
A2E2_GLOBAL_FEEDBACK_SPACING_MS: int = int(os.getenv("A2E2_GLOBAL_FEEDBACK_SPACING_MS", "2000"))

# ============================================================================
# SMOOTHING AND BUFFERS
# ============================================================================
# Weight of the newest reading in the exponential moving average (0-1).
A2E2_EMA_ALPHA: float = float(os.getenv("A2E2_EMA_ALPHA", "0.3"))
# Samples older than this (ms) are dropped from a participant's buffer.
A2E2_SAMPLE_PRUNE_MS: int = int(os.getenv("A2E2_SAMPLE_PRUNE_MS", "65000"))
# How long (ms) emitted signal types stay in the recent-emotion history.
# Guards look back 30 s and the message contextualizer 60 s.
A2E2_RECENT_EMOTIONS_RETENTION_MS: int = max(
    30000, int(os.getenv("A2E2_RECENT_EMOTIONS_RETENTION_MS", "60000"))
)
# Snapshots of smoothed emotion scores kept per participant for trend lookups.
A2E2_EMOTION_HISTORY_LEN: int = max(2, int(os.getenv("A2E2_EMOTION_HISTORY_LEN", "120")))

# ============================================================================
# MEETING SCOPE
# ============================================================================
# When false, samples from participants with role "host" are ignored.
A2E2_INCLUDE_HOST: bool = os.getenv("A2E2_INCLUDE_HOST", "false").lower() == "true"

# ============================================================================
# DIAGNOSTICS (off by default)
# ============================================================================
# Log the step at which each detector rejected a tick (INFO level).
A2E2_DIAGNOSTIC_LOGGING: bool = os.getenv("A2E2_DIAGNOSTIC_LOGGING", "false").lower() == "true"
