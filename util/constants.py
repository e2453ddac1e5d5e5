class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    CLASSIFY = V1 + "/classify"
    CLASSIFY_BATCH = V1 + "/classify-batch"
    CAPTURE = V1 + "/capture"
    EXTRACT = V1 + "/extract"
    VERIFY_HASH = V1 + "/verify-hash"
    COMPARISONS = V1 + "/comparisons"
    NOTICE = V1 + "/notice"
    ENFORCE = V1 + "/enforce"
    LEARNED_EXAMPLES = V1 + "/examples"


class ExternalURIs:
    WAYBACK_SAVE = "https://web.archive.org/save/"
    WAYBACK_WEB = "https://web.archive.org/web/"
