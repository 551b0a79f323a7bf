from enum import Enum


class FoodCategory(str, Enum):
    MAIN = "Main"
    APPETIZER = "Appetizer"
    DESSERT = "Dessert"
    DRINK = "Drink"

    @classmethod
    def values(cls) -> list:
        return [category.value for category in cls]
