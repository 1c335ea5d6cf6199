FRIENDLY_MESSAGES = {
    "StoreUnavailable": "Messages are temporarily unavailable. Please try again shortly.",
    "CircuitOpen": "This service is recovering from errors. Please try again shortly.",
    "IntegrityError": "That record conflicts with existing data.",
    "OperationalError": "Temporary issue while accessing data. Please try again shortly.",
    "SMTP": "We could not send the email right now. Please try again later.",
    "ConnectionError": "Unable to connect to a required service. Please try again later.",
    "TimeoutError": "The request took too long. Please try again later.",
    "ValueError": "Invalid data received. Please check your input and try again.",
}


def get_friendly_message(error: Exception) -> str:
    name = type(error).__name__.lower()
    for key, msg in FRIENDLY_MESSAGES.items():
        if key.lower() in name:
            return msg
    return "Something went wrong on our end. Please try again."
