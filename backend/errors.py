"""Errors raised by the remote image service client."""


class ImageServiceError(RuntimeError):
    """Base class for failures talking to the image model."""


class RemoteContractFailure(ImageServiceError):
    """The call succeeded but the payload is not what we asked for."""


class RemoteTransportFailure(ImageServiceError):
    """The call itself failed: network, non-2xx status or bad credentials."""
