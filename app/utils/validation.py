from typing import Optional


class ValidationHelpers:
    @staticmethod
    def validate_name(name: Optional[str]) -> bool:
        """A name is required; whitespace alone does not count"""
        return bool(name and name.strip())

    @staticmethod
    def clean_dish(dish: Optional[str]) -> Optional[str]:
        """Dish is optional free text; blank becomes None"""
        if dish is None:
            return None
        dish = dish.strip()
        return dish or None
