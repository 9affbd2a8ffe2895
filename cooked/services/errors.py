class ServiceError(Exception):
    pass


class InputError(ServiceError):
    pass


class UnsupportedInputKind(InputError):
    def __init__(self, kind: object):
        super().__init__(f"Unsupported input type: {kind}")
        self.kind = kind


class UnsafeURLError(InputError):
    pass


class ProviderError(ServiceError):
    pass


class UpstreamHttpError(ProviderError):
    def __init__(self, provider: str, status_code: int, body: str = ""):
        super().__init__(f"{provider} API error {status_code}: {body[:500]}")
        self.provider = provider
        self.status_code = status_code
        self.body = body


class ProviderTransportError(ProviderError):
    def __init__(self, provider: str, reason: str):
        super().__init__(f"{provider} request failed: {reason}")
        self.provider = provider
        self.reason = reason


class SchemaViolation(ProviderError):
    pass


class ProviderUnavailable(ServiceError):
    def __init__(self, message: str = "No AI provider available for recipe parsing.", attempted: list[str] | None = None):
        super().__init__(message)
        self.attempted = attempted or []


class ImageParseError(ServiceError):
    def __init__(self, message: str = "Could not parse recipe from images. Please try again or paste the recipe text."):
        super().__init__(message)


class PromptTemplateError(ServiceError):
    pass


class RecipeNotFoundError(ServiceError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class RecipeUpdateError(ServiceError):
    pass


class RecipeStoreError(ServiceError):
    pass
