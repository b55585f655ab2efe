"""
Ubuntu Dev Setup
----------------

Idempotent bootstrapper for Ubuntu development machines. Runs an ordered
list of "ensure installed" steps (apt, snap and vendor installers), each
gated by an environment toggle and skipped when its target state already
holds, so re-running the whole program is always safe.

Run as a regular user; privileged commands go through sudo.
"""

APP_NAME = "Ubuntu Dev Setup"
VERSION = "1.0.0"
LOGGER_NAME = "ubuntu_dev_setup"
