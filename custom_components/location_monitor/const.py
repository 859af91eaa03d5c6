DOMAIN = "location_monitor"
VERSION = "0.3.0"

# Provider names
GPS_PROVIDER = "gps"
NETWORK_PROVIDER = "network"
PASSIVE_PROVIDER = "passive"
MOCK_PROVIDER = "mock"

# Live subscription parameters
MIN_UPDATE_TIME_MS = 1000    # minimum time between fixes delivered to one listener
MIN_UPDATE_DISTANCE_M = 0.0  # minimum movement between fixes delivered to one listener

# Fix timestamps are rendered in the HA local timezone
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Error messages attached to published snapshots
ERROR_PERMISSIONS_NOT_GRANTED = "Location permissions not granted"
ERROR_SECURITY_EXCEPTION = "Security exception: {message}"
ERROR_PROVIDER_NOT_AVAILABLE = "Provider not available: {provider}"

# gpsd
DEFAULT_GPSD_HOST = "localhost"
DEFAULT_GPSD_PORT = 2947
GPSD_WATCH_COMMAND = b'?WATCH={"enable":true,"json":true}\n'
GPSD_RECONNECT_DELAY = 10    # seconds to wait before reconnecting to gpsd
GPSD_MIN_FIX_MODE = 2        # TPV mode: 0/1 = no fix, 2 = 2D, 3 = 3D

# Network (IP geolocation)
DEFAULT_GEOLOCATION_URL = "http://ip-api.com/json/"
NETWORK_POLL_INTERVAL = 300  # seconds between geolocation requests
NETWORK_ACCURACY = 5000.0    # metres; IP geolocation is city-level at best
NETWORK_REQUEST_TIMEOUT = 15

# Config entry keys
CONF_ENTRY_NAME = "entry_name"
CONF_GPSD_ENABLED = "gpsd_enabled"
CONF_GPSD_HOST = "gpsd_host"
CONF_GPSD_PORT = "gpsd_port"
CONF_NETWORK_ENABLED = "network_enabled"
CONF_GEOLOCATION_URL = "geolocation_url"
CONF_MOCK_PROVIDER = "enable_mock_provider"
CONF_GRANT_FINE = "grant_precise_location"
CONF_GRANT_COARSE = "grant_approximate_location"

SERVICE_REPORT_LOCATION = "report_location"
