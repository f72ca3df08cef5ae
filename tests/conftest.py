import io

import pytest
from PIL import Image

from app.errors import ImageLoadError
from app.main import create_app
from app.models import CouponRecord
from app.rendering.compositor import CouponCompositor
from app.rendering.template_cache import TemplateImageCache

TEMPLATE_URL = "https://cdn.example.com/templates/coupon.png"
TEMPLATE_COLOR = (30, 120, 200)


def make_template_bytes(width=1048, height=598, color=TEMPLATE_COLOR) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, "PNG")
    return buf.getvalue()


def make_record(i=1, **kwargs) -> CouponRecord:
    values = dict(
        name=f"Employee {i}",
        emp_id=f"EMP-{1000 + i}",
        issue_date="2024-03-05",
        serial_code=f"CPN-{i:06d}",
        amount=150,
        id=f"rec-{i}",
    )
    values.update(kwargs)
    return CouponRecord(**values)


class FakeFetcher:
    def __init__(self, images=None):
        self.images = dict(images or {})
        self.calls = []

    def __call__(self, url):
        self.calls.append(url)
        if url not in self.images:
            raise ImageLoadError(url, "404 Not Found")
        return self.images[url]


class FailingCompositor(CouponCompositor):
    def __init__(self, bad_keys, exc_type=RuntimeError, **kwargs):
        super().__init__(**kwargs)
        self.bad_keys = set(bad_keys)
        self.exc_type = exc_type
        self.drawn = []

    def draw(self, record, settings, template, template_url=""):
        if record.key in self.bad_keys:
            raise self.exc_type(f"cannot render {record.key}")
        self.drawn.append(record.key)
        return super().draw(record, settings, template, template_url)


class FakeRedis:
    def __init__(self):
        self.hashes = {}
        self.lists = {}

    def hset(self, name, key=None, value=None, mapping=None):
        h = self.hashes.setdefault(name, {})
        if mapping:
            h.update(mapping)
        if key is not None:
            h[key] = value
        return len(mapping or {}) + (key is not None)

    def hgetall(self, name):
        return dict(self.hashes.get(name, {}))

    def rpush(self, name, *values):
        self.lists.setdefault(name, []).extend(values)
        return len(self.lists[name])


@pytest.fixture
def fetcher():
    return FakeFetcher({TEMPLATE_URL: make_template_bytes()})


@pytest.fixture
def cache(fetcher):
    return TemplateImageCache(fetcher=fetcher)


@pytest.fixture
def compositor(cache):
    return CouponCompositor(cache=cache, currency_symbol="₹")


@pytest.fixture
def record():
    return make_record(1, name="Asha Verma", emp_id="EMP-1042", serial_code="CPN-000123")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def flask_app(compositor):
    flask_app = create_app({
        "TESTING": True,
        "PRINT_DPI": 30,
        "DEFAULT_TEMPLATE_URL": TEMPLATE_URL,
    })
    flask_app.extensions["coupon_compositor"] = compositor
    return flask_app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
