import sys

from page_renderer.api.main import run

sys.exit(run())
