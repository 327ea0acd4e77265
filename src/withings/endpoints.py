"""
Withings API endpoint definitions.

Base endpoints end with a slash; resource paths are relative and have no
leading slash so they resolve below the base endpoint.

Documentation: https://developer.withings.com/api-reference
"""

# Data API base endpoints
ENDPOINT = "https://wbsapi.withings.net/"
ENDPOINT_HIPAA = "https://wbsapi.us.withingsmed.net/"

# OAuth2 endpoints
AUTH_URL = "https://account.withings.com/oauth2_user/authorize2"
TOKEN_URL = "https://wbsapi.withings.net/v2/oauth2"
AUTH_URL_HIPAA = "https://account.us.withingsmed.com/oauth2_user/authorize2"
TOKEN_URL_HIPAA = "https://wbsapi.us.withingsmed.net/v2/oauth2"

# Measure endpoints
MEASURE = "measure"
MEASURE_V2 = "v2/measure"
