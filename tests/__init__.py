import os

from tests.helpers import VALID_CONFIG

for key, value in VALID_CONFIG.items():
    os.environ.setdefault(key, value)
