import asyncio
from contextlib import asynccontextmanager

from app.schemas.branch import BranchOut
from app.schemas.ingest.lao_workbook import ParsedLaoConditionImport, ParsedLaoImportItem
from app.schemas.lao import Attachment, LaoConditionOut, LaoDetailKV, LaoInspectionOut, LaoRecordOut
from app.services.lao.reconcile import LaoSnapshot, execute_lao_import
from app.services.lao.schedule import import_key


class FakeLaoWriter:
    """In-memory LaoWriter; rejects duplicate (condition, date) inspections like the database."""

    def __init__(self, fail_on=()):
        self.laos: dict[str, LaoRecordOut] = {}
        self.conditions: dict[str, LaoConditionOut] = {}
        self.inspections: dict[str, LaoInspectionOut] = {}
        self.fail_on = set(fail_on)
        self._seq = 0

    def _next_id(self, prefix):
        self._seq += 1
        return f"{prefix}-{self._seq}"

    async def add_lao(self, data):
        if data.lao_number in self.fail_on:
            raise RuntimeError("falha simulada")
        lao_id = self._next_id("lao")
        self.laos[lao_id] = LaoRecordOut(id=lao_id, **data.model_dump())
        return lao_id

    async def update_lao(self, record):
        self.laos[record.id] = record

    async def delete_lao(self, lao_id):
        self.laos.pop(lao_id)

    async def add_condition(self, data):
        condition_id = self._next_id("cond")
        self.conditions[condition_id] = LaoConditionOut(id=condition_id, **data.model_dump())
        return condition_id

    async def update_condition(self, record):
        self.conditions[record.id] = record

    async def delete_condition(self, condition_id):
        self.conditions.pop(condition_id)

    async def add_inspection(self, data):
        for existing in self.inspections.values():
            if (existing.condition_id, existing.inspection_date) == (data.condition_id, data.inspection_date):
                return None
        inspection_id = self._next_id("insp")
        self.inspections[inspection_id] = LaoInspectionOut(id=inspection_id, **data.model_dump())
        return inspection_id

    def snapshot(self, branches=()):
        return LaoSnapshot(
            branches=list(branches),
            laos=list(self.laos.values()),
            conditions=list(self.conditions.values()),
            inspections=list(self.inspections.values()),
        )


class ScopedFakeLaoWriter(FakeLaoWriter):
    """Discards every write of a failed item, like the SQL writer's SAVEPOINT."""

    def __init__(self, fail_on=(), fail_conditions=()):
        super().__init__(fail_on)
        self.fail_conditions = set(fail_conditions)

    async def add_condition(self, data):
        if data.name in self.fail_conditions:
            raise RuntimeError("falha simulada")
        return await super().add_condition(data)

    @asynccontextmanager
    async def item_scope(self):
        saved = (dict(self.laos), dict(self.conditions), dict(self.inspections))
        try:
            yield
        except Exception:
            self.laos, self.conditions, self.inspections = saved
            raise


BRANCHES = [BranchOut(id="branch-1", name="Posto Centro")]


def _item(lao_number="LAO 001", empreendimento="Posto Centro", validity_date="2027-01-01", conditions=None, **extra):
    return ParsedLaoImportItem(
        import_key=import_key(lao_number, empreendimento),
        lao_number=lao_number,
        title=f"{lao_number} {empreendimento}",
        empreendimento=empreendimento,
        validity_date=validity_date,
        conditions=conditions or [],
        **extra,
    )


def _condition(name="Monitoramento", inspections=("2024-01-10", "2024-07-10"), **extra):
    dates = list(inspections)
    return ParsedLaoConditionImport(
        name=name,
        frequency_preset=extra.pop("frequency_preset", "semestral"),
        inspections=dates,
        last_inspection_date=max(dates) if dates else None,
        **extra,
    )


def _run(writer, items, parser_errors=None, branches=BRANCHES, snapshot=None):
    return asyncio.run(
        execute_lao_import(
            items,
            parser_errors,
            writer=writer,
            snapshot=snapshot if snapshot is not None else writer.snapshot(branches),
        )
    )


def test_first_import_creates_everything():
    writer = FakeLaoWriter()

    result = _run(writer, [_item(conditions=[_condition()])], parser_errors=["aviso do parser"])

    assert result.created == 1
    assert result.updated == 0
    assert result.condition_created == 1
    assert result.inspections_created == 2
    assert result.pending_branch == 0
    assert result.parser_errors == ["aviso do parser"]
    (lao,) = writer.laos.values()
    assert lao.branch_id == "branch-1"
    (condition,) = writer.conditions.values()
    assert condition.lao_id == lao.id
    assert condition.last_inspection_date == "2024-07-10"
    assert {i.source for i in writer.inspections.values()} == {"import"}


def test_second_run_is_idempotent():
    writer = FakeLaoWriter()
    items = [_item(conditions=[_condition()])]
    _run(writer, items)

    second = _run(writer, items)

    assert second.created == 0
    assert second.updated == 1
    assert second.condition_created == 0
    assert second.condition_updated == 1
    assert second.inspections_created == 0
    assert second.inspections_skipped == 2
    assert len(writer.laos) == 1
    assert len(writer.conditions) == 1
    assert len(writer.inspections) == 2


def test_same_lao_twice_in_one_run_collapses():
    writer = FakeLaoWriter()
    items = [
        _item(conditions=[_condition("Monitoramento", ["2024-01-10"])]),
        _item("lao 001", "POSTO CENTRO ", conditions=[_condition("monitoramento ", ["2024-02-10"])]),
    ]

    result = _run(writer, items)

    assert result.created == 1
    assert result.updated == 1
    assert result.condition_created == 1
    assert result.condition_updated == 1
    assert result.inspections_created == 2
    (condition,) = writer.conditions.values()
    assert condition.last_inspection_date == "2024-02-10"
    assert {i.condition_id for i in writer.inspections.values()} == {condition.id}


def test_unknown_branch_is_pending_but_imported():
    writer = FakeLaoWriter()

    result = _run(writer, [_item(empreendimento="Fazenda Nova")], branches=[])

    assert result.created == 1
    assert result.pending_branch == 1
    assert result.pending_items[0].lao_number == "LAO 001"
    assert result.pending_items[0].reason == "Filial não encontrada automaticamente"
    (lao,) = writer.laos.values()
    assert lao.branch_id is None


def test_branch_matched_by_normalized_name():
    writer = FakeLaoWriter()

    result = _run(writer, [_item(empreendimento="posto  centro")])

    assert result.pending_branch == 0
    (lao,) = writer.laos.values()
    assert lao.branch_id == "branch-1"


def test_missing_validity_is_an_import_error():
    writer = FakeLaoWriter()

    result = _run(writer, [_item(validity_date=None)])

    assert result.created == 0
    assert result.import_errors == ['LAO "LAO 001" ignorada: validade obrigatória ausente.']
    assert writer.laos == {}


def test_failing_item_does_not_stop_the_run():
    writer = FakeLaoWriter(fail_on={"LAO 666"})

    result = _run(writer, [_item("LAO 666"), _item("LAO 002")])

    assert result.created == 1
    assert result.import_errors == ['Falha ao importar "LAO 666": falha simulada']
    assert [lao.lao_number for lao in writer.laos.values()] == ["LAO 002"]


def test_store_level_duplicate_inspection_is_skipped():
    writer = FakeLaoWriter()
    items = [_item(conditions=[_condition()])]
    _run(writer, items)

    # snapshot without inspections: only the writer knows about them
    snapshot = writer.snapshot(BRANCHES)
    snapshot.inspections = []
    result = _run(writer, items, snapshot=snapshot)

    assert result.inspections_created == 0
    assert result.inspections_skipped == 2


def test_update_keeps_stored_category_and_attachments():
    writer = FakeLaoWriter()
    _run(writer, [_item()])
    (lao_id,) = writer.laos
    writer.laos[lao_id] = writer.laos[lao_id].model_copy(
        update={
            "category": "SGA",
            "attachments": [
                Attachment(id="a1", file_name="lao.pdf", file_url="https://files/lao.pdf", uploaded_at="2024-01-01")
            ],
        }
    )

    _run(
        writer,
        [_item(details=[LaoDetailKV(id="", key="Responsável", value="Maria")], process_number="P-1")],
    )

    lao = writer.laos[lao_id]
    assert lao.category == "SGA"
    assert len(lao.attachments) == 1
    assert lao.process_number == "P-1"
    assert [(d.id, d.key, d.order) for d in lao.details] == [("detail-import-0", "Responsável", 0)]


def test_condition_update_keeps_newest_anchor():
    writer = FakeLaoWriter()
    _run(writer, [_item(conditions=[_condition(inspections=["2024-07-10"])])])

    _run(writer, [_item(conditions=[_condition(inspections=["2023-01-10"], frequency_preset="anual")])])

    (condition,) = writer.conditions.values()
    assert condition.frequency_preset == "anual"
    assert condition.last_inspection_date == "2024-07-10"
    assert len(writer.inspections) == 2


def test_rolled_back_item_leaves_no_trace():
    writer = ScopedFakeLaoWriter(fail_conditions={"Falha"})

    result = _run(
        writer,
        [
            _item(conditions=[_condition(), _condition(name="Falha")]),
            _item(conditions=[_condition()]),
        ],
    )

    # the second item is a fresh create: the first one's LAO was discarded
    assert result.created == 1
    assert result.updated == 0
    assert result.condition_created == 1
    assert result.inspections_created == 2
    assert len(result.import_errors) == 1
    assert result.import_errors[0].startswith('Falha ao importar "LAO 001"')
    assert len(writer.laos) == 1
    assert len(writer.conditions) == 1
    assert len(writer.inspections) == 2


def test_failed_item_without_scope_keeps_partial_counts():
    writer = FakeLaoWriter()

    async def broken_add_inspection(data):
        raise RuntimeError("falha simulada")

    writer.add_inspection = broken_add_inspection
    result = _run(writer, [_item(conditions=[_condition()])])

    assert result.created == 1
    assert result.condition_created == 1
    assert len(result.import_errors) == 1
    assert len(writer.laos) == 1
