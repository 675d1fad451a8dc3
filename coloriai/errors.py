class ColoriError(Exception):
    """Base class for failures talking to the services ColoriAI sits on."""


class AnalysisError(ColoriError):
    pass


class ImageGenerationError(ColoriError):
    pass


class InvalidImageError(ColoriError):
    pass


class IdentityProviderError(ColoriError):
    pass


class UserNotFound(IdentityProviderError):
    pass
