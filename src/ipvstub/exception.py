class IpvStubError(Exception):
    pass


class IpvEndpointError(IpvStubError):
    pass


class ConfigurationError(IpvEndpointError):
    pass


class RedirectURIError(IpvEndpointError):
    pass


class RequestObjectError(IpvEndpointError):
    pass


class InvalidPayload(IpvEndpointError):
    pass


class OrchestratorError(IpvStubError):
    pass


class ServiceError(OrchestratorError):
    pass


class AuthorizationFailed(OrchestratorError):
    pass


class StateMismatch(AuthorizationFailed):
    pass


class TokenRequestFailed(OrchestratorError):
    pass


class CredentialRequestFailed(OrchestratorError):
    pass
