from unittest.mock import MagicMock

import pytest

from product_lookup.api.usda_client import ALL_DATA_TYPES, BRANDED_DATA_TYPES, UsdaClient
from product_lookup.errors import OperationCancelledError, PluginInitError
from product_lookup.models import SearchType
from product_lookup.pipeline.cancellation import CancellationToken
from product_lookup.pipeline.context import PipelineContext
from product_lookup.plugins.usda import UsdaFoodDataPlugin

OAT_DRINK = {
    "fdcId": 2345678,
    "description": "OAT DRINK",
    "gtinUpc": "0761720051108",
    "brandOwner": "Oatly Inc",
    "brandName": "OATLY",
    "foodCategory": "Plant Based Milk",
    "ingredients": "OAT BASE (WATER, OATS), RAPESEED OIL",
    "servingSize": 240,
    "servingSizeUnit": "ml",
    "householdServingFullText": "1 cup",
    "foodNutrients": [
        {"nutrientId": 1008, "value": 120},
        {"nutrientId": 1003, "value": 3.0},
        {"nutrientId": 1093, "value": 100},
        {"nutrientId": 9999, "value": 1},
        {"nutrientId": 1087, "value": None},
    ],
}

OTHER_FOOD = dict(OAT_DRINK, fdcId=1, gtinUpc="4006381333931", description="OTHER")


@pytest.fixture
def plugin():
    p = UsdaFoodDataPlugin()
    p.init({"apiKey": "test-key"})
    p.client = MagicMock(spec=UsdaClient)
    return p


def test_init_without_key_is_unavailable():
    p = UsdaFoodDataPlugin()
    p.init(None)
    assert p.client is None
    assert p.is_available is False


def test_init_reads_key_from_environment(monkeypatch):
    monkeypatch.setenv("USDA_API_KEY", "env-key")
    p = UsdaFoodDataPlugin()
    p.init({})
    assert p.is_available
    assert p.client.api_key == "env-key"


def test_init_rejects_bad_default_max_results():
    with pytest.raises(PluginInitError):
        UsdaFoodDataPlugin().init({"apiKey": "k", "defaultMaxResults": 0})


def test_init_honours_base_url():
    p = UsdaFoodDataPlugin()
    p.init({"apiKey": "k", "baseUrl": "https://fdc.example/v1", "defaultMaxResults": 5})
    assert p.client.base_url == "https://fdc.example/v1/"
    assert p.default_max_results == 5


def test_barcode_lookup_filters_to_equivalent_gtin(plugin):
    plugin.client.search_foods.return_value = [OAT_DRINK, OTHER_FOOD]

    results = plugin.lookup("761720051108", SearchType.BARCODE, 20)

    plugin.client.search_foods.assert_called_once_with("761720051108", BRANDED_DATA_TYPES, 10)
    assert len(results) == 1
    r = results[0]
    assert r.name == "OAT DRINK"
    assert r.brand_name == "OATLY"
    assert r.brand_owner == "Oatly Inc"
    assert r.barcode == "0761720051108"
    assert r.categories == ["Plant Based Milk"]
    assert r.serving_size_description == "1 cup"
    assert r.data_sources == {"USDA FoodData Central": "2345678"}
    assert r.product_url.endswith("/2345678/nutrients")


def test_nutrition_mapping(plugin):
    n = plugin.to_result(OAT_DRINK).nutrition
    assert n.source == "USDA FoodData Central"
    assert n.external_source_id == "2345678"
    assert n.calories == 120.0
    assert n.protein == 3.0
    assert n.sodium == 100.0
    assert n.calcium is None
    assert n.serving_size == 240.0
    assert n.serving_unit == "ml"


def test_food_without_nutrients_has_no_nutrition(plugin):
    food = dict(OAT_DRINK, foodNutrients=[])
    assert plugin.to_result(food).nutrition is None


def test_name_lookup_uses_all_data_types_and_caps_results(plugin):
    plugin.client.search_foods.return_value = [OAT_DRINK, OTHER_FOOD, dict(OAT_DRINK, fdcId=3)]

    results = plugin.lookup("oat drink", SearchType.NAME, 2)

    plugin.client.search_foods.assert_called_once_with("oat drink", ALL_DATA_TYPES, 2)
    assert len(results) == 2


def test_lookup_without_client_returns_nothing():
    p = UsdaFoodDataPlugin()
    p.init({})
    assert p.lookup("oat", SearchType.NAME, 5) == []


def test_process_pipeline_merges_into_context(plugin):
    plugin.client.search_foods.return_value = [OAT_DRINK]
    ctx = PipelineContext("761720051108", SearchType.BARCODE)

    plugin.process_pipeline(ctx)

    assert len(ctx.results) == 1
    assert ctx.results[0].data_sources == {"USDA FoodData Central": "2345678"}


def test_process_pipeline_checks_cancellation_before_request(plugin):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelledError):
        plugin.process_pipeline(PipelineContext("oat", SearchType.NAME), token)
    plugin.client.search_foods.assert_not_called()


def test_food_without_fdc_id_still_names_its_source(plugin):
    r = plugin.to_result({"description": "Almond Drink"})
    assert r.data_sources == {"USDA FoodData Central": ""}
    assert r.product_url is None
