# backend/utils/costing.py
import logging
from sqlalchemy.orm import Session

from models.recipe import Recipe
from utils.ledger import current_unit_cost

logger = logging.getLogger(__name__)


def recalculate_recipe_costs(db: Session, recipe: Recipe) -> float:
    """Re-price every ingredient at its current average and refresh the recipe totals."""
    total = 0.0
    for ingredient in recipe.ingredients:
        material = ingredient.material
        if recipe.warehouse_id is not None:
            unit_cost = current_unit_cost(db, material, recipe.warehouse_id)
        else:
            unit_cost = material.average_cost or 0.0
        ingredient.unit_cost = unit_cost
        ingredient.total_cost = unit_cost * ingredient.quantity
        total += ingredient.total_cost

    recipe.total_cost = total
    recipe.cost_per_serving = total / recipe.servings if recipe.servings else 0.0
    db.flush()
    logger.debug("Recipe #%s costed at %.4f (%d ingredients)", recipe.id, total, len(recipe.ingredients))
    return total
