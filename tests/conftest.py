import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

# The API module creates its upload/result dirs at import time
os.environ.setdefault("MAPPER_HOME", tempfile.mkdtemp(prefix="mapper-test-"))

from market_mapper.profiles import profile_from_dict  # noqa: E402


BASIC_PROFILE = {
    "id": "test-basic",
    "name": "Basic test profile",
    "marketplace": "test",
    "mappings": [
        {"sourceField": "product_name", "targetField": "상품명", "transformer": "toString", "required": True},
        {"sourceField": "price", "targetField": "판매가", "transformer": "toPrice", "required": True, "validator": "positive"},
        {"sourceField": "category", "targetField": "카테고리", "transformer": "toCategory", "options": {"categoryMap": "category"}},
    ],
    "metadata": {"requiredFields": ["상품명", "판매가"]},
}


@pytest.fixture
def basic_profile():
    return profile_from_dict(BASIC_PROFILE)


@pytest.fixture
def scraped_record():
    return {"product_name": "Test Shirt", "price": "15000", "category": "상의"}
