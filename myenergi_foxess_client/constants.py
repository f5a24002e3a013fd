"""Constants for myenergi-foxess-client."""

VENDOR_MYENERGI = "myenergi"
VENDOR_FOXESS = "foxess"

# myenergi director (server discovery)
# The director answers the bootstrap call with a 401 but still names the
# hub's server in the X_MYENERGI-asn header.
MYENERGI_DIRECTOR_URL = "https://director.myenergi.net/cgi-jstatus-E"
MYENERGI_ASN_HEADER = "X_MYENERGI-asn"

# myenergi data endpoint (digest authenticated)
MYENERGI_STATUS_PATH = "/cgi-jstatus-E"
EDDI_DEVICE_KEY = "eddi"
EDDI_DIVERSION_FIELD = "div"
EDDI_STATUS_FIELDS = ("stat", "sta")  # "sta" on older hub firmware

# HTTP Digest authentication
WWW_AUTHENTICATE_HEADER = "WWW-Authenticate"
AUTHORIZATION_HEADER = "Authorization"
DIGEST_NONCE_COUNT = "00000001"  # Single-use request, nonce never repeated
DIGEST_DEFAULT_ALGORITHM = "MD5"

# Fox ESS cloud (signed requests)
FOXESS_BASE_URL = "https://www.foxesscloud.com"
FOXESS_REALTIME_PATH = "/c/v0/device/real"
FOXESS_LANG = "en"
FOXESS_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/108.0.0.0 Safari/537.36"
)

# Fox ESS realtime record names
FOXESS_SOLAR_POWER = "pvPower"
FOXESS_STATE_OF_CHARGE = "SoC"
FOXESS_GRID_POWER = "gridPower"

WATTS_PER_KILOWATT = 1000
