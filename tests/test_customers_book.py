from rota.models.domain import Customer
from rota.schemas.customers import ExtractedCustomer
from rota.services.customers import digits_only, merge_extracted_customers, search_customers
from rota.services.customers.book import DEFAULT_ADDRESS, DEFAULT_STATUS


def _customer(cid: str, name: str, address: str = "Rua A, 10", phones=None, neighborhood="Tirol") -> Customer:
    return Customer(
        id=cid,
        name=name,
        address=address,
        neighborhood=neighborhood,
        city="Natal",
        state="RN",
        phones=list(phones or []),
    )


def test_digits_only():
    assert digits_only("(84) 99999-1234") == "84999991234"
    assert digits_only(None) == ""


def test_search_matches_name_address_neighborhood_and_phone():
    customers = [
        _customer("1", "Maria Souza", "Av. Hermes da Fonseca, 100", ["84 98888-0000"]),
        _customer("2", "João Lima", "Rua Mossoró, 5", ["84 97777-1111"], neighborhood="Petrópolis"),
    ]

    assert [c.id for c in search_customers(customers, "maria")] == ["1"]
    assert [c.id for c in search_customers(customers, "MOSSORÓ")] == ["2"]
    assert [c.id for c in search_customers(customers, "petró")] == ["2"]
    assert [c.id for c in search_customers(customers, "97777")] == ["2"]
    assert search_customers(customers, "") == customers
    assert search_customers(customers, "inexistente") == []


def test_merge_appends_new_customers_with_defaults():
    result = merge_extracted_customers([], [ExtractedCustomer(name="Ana", phone="84 91234-5678")])

    assert result.created == 1
    created = result.customers[0]
    assert created.name == "Ana"
    assert created.address == DEFAULT_ADDRESS
    assert created.status == DEFAULT_STATUS
    assert created.phones == ["84 91234-5678"]
    assert len(created.id) == 9


def test_merge_by_name_adds_secondary_address_and_phone():
    existing = [_customer("1", "Maria Souza", "Rua A, 10", ["84 98888-0000"])]

    result = merge_extracted_customers(
        existing,
        [ExtractedCustomer(name="  maria souza ", address="Rua B, 20", phone="84 97777-0000")],
    )

    assert result.merged == 1
    assert result.created == 0
    merged = result.customers[0]
    assert merged.id == "1"
    assert merged.secondary_addresses == ["Rua B, 20"]
    assert merged.phones == ["84 98888-0000", "84 97777-0000"]
    # the input list is left untouched
    assert existing[0].secondary_addresses == []


def test_merge_by_phone_ignores_formatting_and_known_values():
    existing = [_customer("1", "Maria Souza", "Rua A, 10", ["(84) 98888-0000"])]

    result = merge_extracted_customers(
        existing,
        [ExtractedCustomer(name="Dona Maria", address="rua a, 10", phone="84988880000")],
    )

    assert result.merged == 1
    assert result.customers[0].phones == ["(84) 98888-0000"]
    assert result.customers[0].secondary_addresses == []


def test_merge_skips_records_without_name():
    result = merge_extracted_customers([], [ExtractedCustomer(name="  "), ExtractedCustomer(address="Rua C")])

    assert result.skipped == 2
    assert result.customers == []


def test_merge_drops_unusable_coordinates():
    result = merge_extracted_customers(
        [],
        [
            ExtractedCustomer(name="Ana", latitude=200.0, longitude=-35.2),
            ExtractedCustomer(name="Bia", latitude=float("nan"), longitude=-35.2),
            ExtractedCustomer(name="Cris", latitude=-5.8, longitude=-35.2),
        ],
    )

    coords = [(c.latitude, c.longitude) for c in result.customers]
    assert coords == [(None, None), (None, None), (-5.8, -35.2)]
    assert [c.has_coordinates for c in result.customers] == [False, False, True]
