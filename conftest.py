"""
Root pytest configuration.

Disables file logging before shared.config is imported so test runs do not
create logs/app.log.
"""
import os

os.environ.setdefault("LOG_DIR", "")
