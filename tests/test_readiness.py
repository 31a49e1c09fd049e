"""Tests for migration readiness scoring."""

from formsgraph.orchestrator import AnalysisOrchestrator
from formsgraph.readiness import (
    analyze_migration_readiness,
    calculate_overall_complexity,
    complexity_tier,
    estimate_effort,
    estimate_unit_hours,
    generate_priority_list,
    identify_critical_risks,
    priority_reason,
)


class TestComplexity:

    def test_tiers(self):
        assert [complexity_tier(c) for c in (1, 3, 4, 6, 7, 10)] == [
            "low", "low", "medium", "medium", "high", "high",
        ]

    def test_overall_complexity(self, make_unit):
        units = [make_unit("A", complexity=3), make_unit("B", complexity=4)]
        # 3.5 * 1.2 = 4.2
        assert calculate_overall_complexity(units) == 4

    def test_many_high_impact_units_weigh_more(self, make_unit):
        units = [make_unit(f"U{i}", complexity=4, impact_score="high") for i in range(6)]
        assert calculate_overall_complexity(units) == 6

    def test_overall_complexity_capped(self, make_unit):
        units = [make_unit("A", complexity=10, impact_score="high") for _ in range(6)]
        assert calculate_overall_complexity(units) == 10

    def test_empty(self):
        readiness = analyze_migration_readiness([])
        assert readiness.overall_complexity == 1
        assert readiness.total_program_units == 0
        assert readiness.priority_list == []
        assert readiness.estimated_effort == "0-0 hours"


class TestRisks:

    def test_builtin_risk_severity(self, make_unit):
        few = make_unit("FEW", risk_flags=["Forms builtin: GO_BLOCK"])
        many = make_unit("MANY", risk_flags=[f"Forms builtin: B{i}" for i in range(4)])
        risks = identify_critical_risks([few, many])
        assert [(r.unit_name, r.severity) for r in risks] == [("MANY", "high"), ("FEW", "medium")]
        assert risks[0].description == "Uses 4 Forms-specific builtins that must be rewritten for APEX"

    def test_ui_coupling(self, make_unit):
        text = "\n".join(["SET_ITEM_PROPERTY('B.I', VISIBLE, PROPERTY_TRUE);"] * 6)
        risks = identify_critical_risks([make_unit("UI", text=text)])
        assert [(r.risk_type, r.severity) for r in risks] == [("tight-ui-coupling", "high")]

    def test_complexity_and_dynamic_sql(self, make_unit):
        unit = make_unit("X", complexity=8, risk_flags=["Dynamic SQL detected"])
        risks = identify_critical_risks([unit])
        assert [(r.risk_type, r.severity) for r in risks] == [
            ("complex-logic", "medium"),
            ("complex-logic", "medium"),
        ]
        assert risks[1].description == "Uses dynamic SQL - requires validation and security review"

    def test_sorted_high_first_and_stable(self, make_unit):
        units = [
            make_unit("M1", complexity=8),
            make_unit("H1", complexity=9),
            make_unit("M2", risk_flags=["Dynamic SQL detected"]),
        ]
        assert [r.unit_name for r in identify_critical_risks(units)] == ["H1", "M1", "M2"]


class TestPriority:

    def test_main_transaction_units_first(self, make_unit):
        units = [
            make_unit("HELPER", classification="Utility/Helper", complexity=1),
            make_unit(
                "SAVE",
                classification="Transaction Logic",
                impact_score="high",
                is_main_function=True,
                called_by=["Trigger: KEY-COMMIT"],
            ),
        ]
        ranked = generate_priority_list(units)
        assert [(p.unit_name, p.priority) for p in ranked] == [("SAVE", 1), ("HELPER", 2)]
        assert ranked[0].reason == (
            "Main function; called by 1 trigger; high impact on data; "
            "transaction controller; relatively simple to migrate"
        )

    def test_ties_keep_input_order(self, make_unit):
        units = [make_unit("B"), make_unit("A")]
        assert [p.unit_name for p in generate_priority_list(units)] == ["B", "A"]

    def test_limit(self, make_unit):
        units = [make_unit(f"U{i}") for i in range(30)]
        assert len(generate_priority_list(units)) == 20
        assert len(generate_priority_list(units, limit=5)) == 5

    def test_standard_reason(self, make_unit):
        assert priority_reason(make_unit("X", complexity=6)) == "Standard migration"


class TestEffort:

    def test_unit_hours(self, make_unit):
        # 2 + 3 * 0.5 = 3.5, rounded half up
        assert estimate_unit_hours(make_unit("A", complexity=3)) == 4
        big = make_unit("B", complexity=2, line_count=120, risk_flags=["Forms builtin: GO_ITEM"])
        assert estimate_unit_hours(big) == 6

    def test_effort_range(self, make_unit):
        units = [make_unit("A", complexity=2), make_unit("B", complexity=2)]
        # (3 + 3) * 1.3 = 7.8, rounded to 8
        assert estimate_effort(units) == "6-10 hours"
        assert estimate_effort(units, overhead=1.0) == "5-7 hours"


class TestFormReadiness:

    def test_orders_form(self, sample_form_path):
        readiness = AnalysisOrchestrator().analyze_form_xml(sample_form_path).readiness
        assert readiness.overall_complexity == 2
        assert readiness.total_program_units == 4
        assert (
            readiness.high_complexity_units,
            readiness.medium_complexity_units,
            readiness.low_complexity_units,
        ) == (0, 0, 4)
        assert [(r.unit_name, r.risk_type, r.severity) for r in readiness.critical_risks] == [
            ("INIT_FORM", "forms-builtins", "medium"),
        ]
        first = readiness.priority_list[0]
        assert (first.unit_name, first.priority, first.estimated_hours) == ("SAVE_ORDER", 1, 4)
        assert [p.unit_name for p in readiness.priority_list] == [
            "SAVE_ORDER", "INIT_FORM", "GET_TOTAL", "VALIDATE_QTY",
        ]
        assert readiness.estimated_effort == "14-20 hours"
