from __future__ import annotations

from cooked.services.heuristic import HeuristicRecipeParser
from cooked.services.validator import DEFAULT_TITLE


def _pairs(recipe):
    return [(i.name, i.quantity) for i in recipe.ingredients]


def _steps(recipe):
    return [(s.order, s.instruction) for s in recipe.steps]


class TestSectionedText:
    def test_headers_split_ingredients_and_steps(self) -> None:
        text = "\n".join([
            "Pancakes",
            "Ingredients:",
            "1 1/2 cups flour",
            "2 eggs",
            "- Salt",
            "Instructions:",
            "1. Mix the flour and eggs.",
            "2) Cook on a hot pan.",
            "Step 3: Serve warm.",
        ])
        recipe = HeuristicRecipeParser().parse(text)

        assert recipe.title == "Pancakes"
        assert _pairs(recipe) == [("flour", "1 1/2 cups"), ("eggs", "2"), ("Salt", "")]
        assert _steps(recipe) == [
            (1, "Mix the flour and eggs."),
            (2, "Cook on a hot pan."),
            (3, "Serve warm."),
        ]

    def test_method_header_starts_steps(self) -> None:
        text = "Rice\nIngredients\n1 cup rice\nMethod\nBoil water\nAdd rice"
        recipe = HeuristicRecipeParser().parse(text)
        assert _pairs(recipe) == [("rice", "1 cup")]
        assert _steps(recipe) == [(1, "Boil water"), (2, "Add rice")]

    def test_header_as_first_line_leaves_default_title(self) -> None:
        recipe = HeuristicRecipeParser().parse("Ingredients\n2 cups rice")
        assert recipe.title == DEFAULT_TITLE
        assert _pairs(recipe) == [("rice", "2 cups")]

    def test_unicode_fraction_quantity(self) -> None:
        recipe = HeuristicRecipeParser().parse("Cake\nIngredients\n½ cup sugar")
        assert _pairs(recipe) == [("sugar", "½ cup")]


class TestUnsectionedText:
    def test_numbered_lines_and_unit_lines_are_classified(self) -> None:
        text = "Quick Salad\n2 cups lettuce\n1 tbsp olive oil\n1. Toss everything.\n2. Serve."
        recipe = HeuristicRecipeParser().parse(text)

        assert recipe.title == "Quick Salad"
        assert _pairs(recipe) == [("lettuce", "2 cups"), ("olive oil", "1 tbsp")]
        assert _steps(recipe) == [(1, "Toss everything."), (2, "Serve.")]

    def test_steps_are_renumbered(self) -> None:
        recipe = HeuristicRecipeParser().parse("Eggs\n4. Crack eggs\n9. Fry them")
        assert [s.order for s in recipe.steps] == [1, 2]


class TestFallbacks:
    def test_unclassifiable_text_is_split_in_half(self) -> None:
        recipe = HeuristicRecipeParser().parse("Mystery dish\nfoo\nbar\nbaz")
        assert recipe.title == "Mystery dish"
        assert _pairs(recipe) == [("foo", "")]
        assert _steps(recipe) == [(1, "bar"), (2, "baz")]

    def test_single_line_becomes_single_step(self) -> None:
        recipe = HeuristicRecipeParser().parse("Grandma's soup")
        assert recipe.title == "Grandma's soup"
        assert recipe.ingredients == []
        assert _steps(recipe) == [(1, "Grandma's soup")]

    def test_empty_input(self) -> None:
        recipe = HeuristicRecipeParser().parse("   \n\n ")
        assert recipe.title == DEFAULT_TITLE
        assert recipe.ingredients == []
        assert recipe.steps == []
