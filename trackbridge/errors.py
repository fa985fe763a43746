"""Error taxonomy shared by the bridge and the CLI."""


class BridgeError(Exception):
    """Base class. The message text is what ends up in a response envelope."""


class ValidationError(BridgeError):
    """A field required by the requested operation is missing."""


class UnsupportedPlatformError(BridgeError):
    pass


class UnknownMethodError(BridgeError):
    pass


class ConfigurationError(BridgeError):
    """Required settings for the selected platform are absent."""


class TransportDecodeError(BridgeError):
    """An input line is not a JSON object. Never answered, only logged."""


class UpstreamError(BridgeError):
    """The platform API call itself failed."""


class BridgeCallError(BridgeError):
    """Raised on the CLI side when the bridge process fails or answers with an error."""


class PlanningError(BridgeError):
    """The LLM call failed or its output held no usable plan."""
