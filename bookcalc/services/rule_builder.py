"""
Rule Builder

The single construction step for pricing configuration. Authored config
(plain dicts, e.g. loaded from JSON) is parsed through the pricing schemas
and turned into validated domain objects before any calculation starts.

Every problem is reported as one InvalidConfigError; nothing is coerced or
skipped silently.
"""

import logging
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError

from ..errors import InvalidConfigError
from ..models.cost_rules import CostRule
from ..models.pricing import BookableProduct, PricingConfig
from ..schemas.pricing import (
    CostRuleSchema,
    PricingConfigSchema,
    ProductSchema,
)

logger = logging.getLogger(__name__)

_rules_adapter = TypeAdapter(List[CostRuleSchema])


def invalid_config_error(what: str, errors: Iterable[Dict[str, Any]]) -> InvalidConfigError:
    """One InvalidConfigError listing every pydantic error as "loc: msg" """
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in errors
    ]
    logger.warning(f"Rejected {what}: {'; '.join(problems)}")
    return InvalidConfigError(f"Invalid {what}", {"errors": problems})


def _schema_error(what: str, exc: SchemaValidationError) -> InvalidConfigError:
    return invalid_config_error(what, exc.errors())


def build_cost_rules(raw_rules: Sequence[Dict[str, Any]]) -> Tuple[CostRule, ...]:
    """
    Build ordered, validated cost rules.

    Rules without an explicit "key" are keyed by their position.
    """
    try:
        schemas = _rules_adapter.validate_python(list(raw_rules))
    except SchemaValidationError as e:
        raise _schema_error("cost rules", e)
    return tuple(
        schema.to_rule(schema.key if schema.key is not None else str(position))
        for position, schema in enumerate(schemas)
    )


def build_pricing_config(raw: Dict[str, Any]) -> PricingConfig:
    try:
        schema = PricingConfigSchema.model_validate(raw)
    except SchemaValidationError as e:
        raise _schema_error("pricing config", e)
    return schema.to_config()


def build_product(raw: Dict[str, Any]) -> BookableProduct:
    try:
        schema = ProductSchema.model_validate(raw)
    except SchemaValidationError as e:
        raise _schema_error("product", e)
    return schema.to_product()
