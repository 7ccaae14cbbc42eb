"""Closed vocabularies the recipe API accepts for filter operations."""

MEAL_CATEGORIES: list[str] = [
    "Beef", "Breakfast", "Chicken", "Dessert", "Goat", "Lamb",
    "Miscellaneous", "Pasta", "Pork", "Seafood", "Side", "Starter",
    "Vegan", "Vegetarian",
]

COMMON_INGREDIENTS: list[str] = [
    "Chicken", "Salmon", "Beef", "Pork", "Avocado", "Bacon", "Basil",
    "Basmati Rice", "Bread", "Broccoli", "Brown Rice", "Butter", "Carrots",
    "Cheddar Cheese", "Cheese", "Cherry Tomatoes", "Chicken Breast",
    "Chicken Stock", "Chickpeas", "Cilantro", "Coconut Milk", "Cod",
    "Coriander", "Cream", "Cucumber", "Cumin", "Eggs", "Extra Virgin Olive Oil",
    "Flour", "Garlic", "Ginger", "Honey", "Lemon", "Lime", "Milk", "Mushrooms",
    "Onion", "Parsley", "Pasta", "Potatoes", "Prawns", "Rice", "Salt",
    "Spinach", "Tomatoes", "Tuna", "Yogurt", "Black Pepper", "Olive Oil",
    "Soy Sauce", "Vinegar", "Wine", "Sugar", "Lamb", "Turkey", "Duck",
    "Asparagus", "Aubergine", "Bell Pepper", "Cabbage", "Celery", "Courgettes",
    "Green Beans", "Leeks", "Peas", "Red Onion", "Sweet Potato",
]

CATEGORY_SET: frozenset[str] = frozenset(c.lower() for c in MEAL_CATEGORIES)
INGREDIENT_SET: frozenset[str] = frozenset(i.lower() for i in COMMON_INGREDIENTS)
