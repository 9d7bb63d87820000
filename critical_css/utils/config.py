"""Configuration utility for critical CSS extraction."""

# Project version
VERSION = "1.0.0"

# Timeouts (in milliseconds)
TIMEOUT = 30000
PAGE_LOAD_TIMEOUT = 2000
PAGE_RENDER_TIMEOUT = 300

# Browser
BROWSER_USER_AGENT = f"critical-css {VERSION}"
BROWSER_CACHE_ENABLED = True
BROWSER_JS_ENABLED = True
BROWSER_CONCURRENT_TABS = 10
BROWSER_HEADLESS = True
BROWSER_LAUNCH_ARGS = [
    '--disable-setuid-sandbox',
    '--no-sandbox',
    '--ignore-certificate-errors',
    '--disable-dev-shm-usage',
]

# Device emulation
DEVICE_WIDTH = 1200
DEVICE_HEIGHT = 1080
DEVICE_SCALE_FACTOR = 1
DEVICE_IS_MOBILE = False
DEVICE_HAS_TOUCH = False
DEVICE_IS_LANDSCAPE = False

# Page acquisition retries
PAGE_ACQUIRE_RETRIES = 3
PAGE_ACQUIRE_RETRY_DELAY = 0.5  # seconds

# Output
DROP_KEYFRAMES = True
OUTPUT_REMAINING_CSS = True
PAGE_SCREENSHOT = False
SCREENSHOT_PATH = '.'
PRINT_BROWSER_CONSOLE = False
MINIFY = True

# Known tracking/analytics hosts, not needed for rendering
BLOCK_REQUESTS = [
    'maps.gstatic.com',
    'maps.googleapis.com',
    'googletagmanager.com',
    'google-analytics.com',
    'google.',
    'googleadservices.com',
    'generaltracking.de',
    'bing.com',
    'doubleclick.net',
]

# Rule keys
RULE_SEPARATOR = '-#-'
GROUP_SEPARATOR = '-##-'
MEDIA_PREFIX = '@media '
DEFAULT_RULE_KEY = 'default'

# Logging
LOG_FILE = None
LOG_LEVEL = 'INFO'

# Exported config
__all__ = [
    'VERSION',
    'TIMEOUT', 'PAGE_LOAD_TIMEOUT', 'PAGE_RENDER_TIMEOUT',
    'BROWSER_USER_AGENT', 'BROWSER_CACHE_ENABLED', 'BROWSER_JS_ENABLED',
    'BROWSER_CONCURRENT_TABS', 'BROWSER_HEADLESS', 'BROWSER_LAUNCH_ARGS',
    'DEVICE_WIDTH', 'DEVICE_HEIGHT', 'DEVICE_SCALE_FACTOR',
    'DEVICE_IS_MOBILE', 'DEVICE_HAS_TOUCH', 'DEVICE_IS_LANDSCAPE',
    'PAGE_ACQUIRE_RETRIES', 'PAGE_ACQUIRE_RETRY_DELAY',
    'DROP_KEYFRAMES', 'OUTPUT_REMAINING_CSS', 'PAGE_SCREENSHOT',
    'SCREENSHOT_PATH', 'PRINT_BROWSER_CONSOLE', 'MINIFY',
    'BLOCK_REQUESTS',
    'RULE_SEPARATOR', 'GROUP_SEPARATOR', 'MEDIA_PREFIX', 'DEFAULT_RULE_KEY',
    'LOG_FILE', 'LOG_LEVEL',
]
