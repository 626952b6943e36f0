from decimal import Decimal

from payroll_control import (
    InMemoryOfficialRepository,
    ReconcilePayrollUseCase,
    ReconciliationContext,
    ReconciliationEngine,
    ReconciliationFilters,
)
from payroll_control.domain.concepts import ConceptRegistry
from payroll_control.domain.models import ComputedRecord, OfficialRecord

CONCEPTS = ConceptRegistry.from_pairs([("20540", "CONTRIBUCION SOLIDARIA")])


class ListComputedRepository:
    def __init__(self, records):
        self._records = list(records)

    def list_computed_records(self):
        return list(self._records)


class CountingOfficialRepository(InMemoryOfficialRepository):
    def __init__(self, records):
        super().__init__(records)
        self.fetched: list[str] = []

    def get_official_record(self, key):
        self.fetched.append(key)
        return super().get_official_record(key)


def make_context(computed, official, max_workers=4):
    return ReconciliationContext(
        computed_repository=ListComputedRepository(computed),
        official_repository=official,
        engine=ReconciliationEngine(Decimal("0.01")),
        concepts=CONCEPTS,
        max_workers=max_workers,
    )


def sample_data():
    computed = [
        ComputedRecord.create("1", "01/2024", {"20540": Decimal("10")}, empresa="ACME"),
        ComputedRecord.create("2", "01/2024", {"20540": Decimal("7")}, empresa="acme"),
        ComputedRecord.create("3", "02/2024", {"20540": Decimal("1")}, empresa="ACME"),
        ComputedRecord.create("4", "01/2024", {"20540": Decimal("5")}, empresa="OTRA"),
    ]
    official = [
        OfficialRecord(key="1||01/2024", nombre="UNO", values={"20540": Decimal("10")}),
        OfficialRecord(key="2||01/2024", nombre="DOS", values={"20540": Decimal("9")}),
        OfficialRecord(key="3||02/2024", values={"20540": Decimal("1")}),
        OfficialRecord(key="9||01/2024", nombre="NUEVE", values={"20540": Decimal("1")}),
    ]
    return computed, official


def test_filters_by_period_and_company():
    computed, official = sample_data()
    use_case = ReconcilePayrollUseCase(make_context(computed, InMemoryOfficialRepository(official)))

    response = use_case.execute(ReconciliationFilters(periodo="01/2024", empresa="Acme"))

    summary = response.summary
    assert [r.key for r in summary.oks] == ["1||01/2024"]
    assert [r.key for r in summary.difs] == ["2||01/2024"]
    assert [m.key for m in summary.missing] == ["9||01/2024"]
    assert {r.key for r in response.computed_records} == {"1||01/2024", "2||01/2024"}
    assert response.official_names["9||01/2024"] == "NUEVE"
    assert response.filters.filter_key == "01/2024||Acme"


def test_without_filters_everything_is_reconciled():
    computed, official = sample_data()
    use_case = ReconcilePayrollUseCase(make_context(computed, InMemoryOfficialRepository(official)))

    summary = use_case.execute().summary

    assert summary.stats.ok_receipts == 2
    assert summary.stats.dif_receipts == 1
    assert [m.key for m in summary.missing] == ["9||01/2024"]


def test_counterparts_fetched_once_per_key():
    computed, official = sample_data()
    computed.append(computed[0])
    repository = CountingOfficialRepository(official)
    use_case = ReconcilePayrollUseCase(make_context(computed, repository, max_workers=2))

    response = use_case.execute()

    assert sorted(repository.fetched) == ["1||01/2024", "2||01/2024", "3||02/2024", "4||01/2024"]
    assert set(response.official_by_key) == {"1||01/2024", "2||01/2024", "3||02/2024"}


def test_rerun_is_independent_of_previous_runs():
    computed, official = sample_data()
    use_case = ReconcilePayrollUseCase(make_context(computed, InMemoryOfficialRepository(official)))

    narrowed = use_case.execute(ReconciliationFilters(periodo="02/2024"))
    full = use_case.execute()
    again = use_case.execute()

    assert [r.key for r in narrowed.summary.oks] == ["3||02/2024"]
    assert narrowed.summary.missing == ()
    assert full.summary == again.summary


def test_filter_allows_key_ignores_company():
    filters = ReconciliationFilters(periodo="01/2024", empresa="ACME")
    assert filters.allows_key("9||01/2024")
    assert not filters.allows_key("9||02/2024")
    assert ReconciliationFilters().allows_key("anything")


def test_response_keeps_the_concepts_it_was_computed_with():
    computed, official = sample_data()
    context = make_context(computed, InMemoryOfficialRepository(official))
    context.concepts = iter(CONCEPTS)

    response = ReconcilePayrollUseCase(context).execute()

    assert response.concepts == tuple(CONCEPTS)
    assert response.summary.stats.comparisons == 3
