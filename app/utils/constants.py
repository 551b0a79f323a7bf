class ResponseMessages:
    """Standard API response messages"""

    # Success messages
    SUCCESS = "Success"
    CREATED = "Dish added"
    UPDATED = "Dish updated"
    DELETED = "Dish deleted"

    # User-facing prompts
    NAME_REQUIRED = "Please enter your name"
    CONFIRM_DELETE = "Are you sure you want to delete this dish?"
    NOT_YOURS = "You can only change your own dish"


# Application Constants
class AppConstants:
    # Client-local identity slot (cookie name mirrors the browser storage key)
    IDENTITY_KEY = "potluck_response_id"
    IDENTITY_MAX_AGE = 10 * 365 * 24 * 3600  # effectively never expires

    # View sessions
    SESSION_COOKIE = "potluck_session"
    SESSION_IDLE_SECONDS = 30 * 60
    MAX_SESSIONS = 500

    # Server-sent events
    STREAM_KEEPALIVE_SECONDS = 15

    # Realtime channel
    REALTIME_CHANNEL_PREFIX = "responses"


class FormLabels:
    CREATE_TITLE = "Add a Dish"
    EDIT_TITLE = "Edit Dish"
    CREATE_SUBMIT = "Add Dish"
    EDIT_SUBMIT = "Update Dish"
