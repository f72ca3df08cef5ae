class CouponRenderError(Exception):
    """Base class for everything the renderer raises."""


class TemplateLoadError(CouponRenderError):
    pass


class ImageLoadError(TemplateLoadError):
    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Could not load image {url!r}: {reason}" if reason else url)


class QREncodeError(CouponRenderError):
    pass


class SurfaceCreationError(CouponRenderError):
    """A drawing surface could not be allocated. Fatal for the render call."""


class RecordRenderError(CouponRenderError):
    def __init__(self, record_key: str, cause: BaseException | None = None):
        self.record_key = record_key
        self.cause = cause
        super().__init__(f"Record {record_key!r} failed to render: {cause!r}")
