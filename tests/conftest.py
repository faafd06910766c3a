import os
import shutil
import sys
import tempfile

import pytest

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

from tdm_classification.data.default_registry import build_default_registry  # noqa: E402
from tdm_classification.models.registry import Category, SemanticRule  # noqa: E402


@pytest.fixture
def temp_dir():
    """Create a temporary directory for registry files."""
    path = tempfile.mkdtemp()
    yield path
    shutil.rmtree(path)


@pytest.fixture
def customer_type_rule():
    """The single rule used by the worked suggestion/commit example."""
    return SemanticRule(
        id="rule-customer-type",
        key="customer-type",
        validation_pattern="^customer-type:(retail|vip)$",
        suggestions=("customer-type:retail", "customer-type:vip"),
        line_of_business="BANK",
    )


@pytest.fixture
def schedule_rule():
    return SemanticRule(
        id="rule-schedule",
        key="schedule",
        validation_pattern=r"^schedule:(month|days|year):(\d+)$",
        suggestions=("schedule:month:", "schedule:days:", "schedule:year:"),
        line_of_business="BANK",
        category=Category.RECON,
    )


@pytest.fixture
def default_registry():
    return build_default_registry()


@pytest.fixture
def bank_rules(default_registry):
    return default_registry.semantic_rules("BANK")
