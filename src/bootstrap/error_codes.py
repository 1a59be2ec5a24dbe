# src/bootstrap/error_codes.py
# Central mapping that aligns with the error contract rendered by ExceptionMiddleware.
# Keep keys stable: API clients rely on these.
ERROR_CODES = {
    # ─── Validation & Requests ──────────────────────────────────────────────
    "validation_error": {
        "http": 422,
        "message": "Validation failed for one or more fields.",
    },
    "invalid_request": {
        "http": 400,
        "message": "Invalid request payload.",
    },

    # ─── Resources ──────────────────────────────────────────────────────────
    "not_found": {
        "http": 404,
        "message": "Resource not found.",
    },
    "conflict": {
        "http": 409,
        "message": "Resource conflict.",
    },

    # ─── Throttling & Availability ─────────────────────────────────────────
    "rate_limited": {
        "http": 429,
        "message": "Too many requests. Please retry later.",
    },
    "service_unavailable": {
        "http": 503,
        "message": "Service temporarily unavailable. Please retry later.",
    },

    # ─── Server ─────────────────────────────────────────────────────────────
    "app_error": {
        "http": 500,
        "message": "An application error occurred.",
    },
    "internal_error": {
        "http": 500,
        "message": "Internal server error.",
    },
}
