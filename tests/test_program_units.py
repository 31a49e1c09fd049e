"""Tests for program unit enrichment and main-function identification."""

from formsgraph.forms_xml import load_form_module
from formsgraph.models import ProgramUnit, Trigger
from formsgraph.program_units import (
    analyze_program_unit,
    calculate_complexity,
    calculate_impact_score,
    classify_program_unit,
    detect_risk_flags,
    extract_parameters,
    extract_return_type,
    find_callers,
    identify_main_functions,
)
from formsgraph.rules import LOGIC_CATEGORIES


SINGLE_LINE_DML = "PROCEDURE P1 IS BEGIN INSERT INTO T1 VALUES (1); UPDATE T2 SET X=1; END P1;"


class TestClassification:

    def test_dml_is_transaction_logic(self):
        assert classify_program_unit(SINGLE_LINE_DML, "Procedure") == "Transaction Logic"

    def test_ui_rule_wins_over_later_rules(self):
        code = "PROCEDURE p IS BEGIN GO_BLOCK('X'); COMMIT; END;"
        assert classify_program_unit(code, "Procedure") == "UI Logic"

    def test_commented_keywords_ignored(self):
        code = "PROCEDURE a IS\nBEGIN\n  -- GO_BLOCK('X');\n  NULL;\nEND;"
        assert classify_program_unit(code, "Procedure") == "Unknown"

    def test_helper_rule_applies_to_functions_only(self):
        code = "FUNCTION fmt_name RETURN VARCHAR2 IS BEGIN RETURN TO_CHAR(1); END;"
        assert classify_program_unit(code, "Function") == "Utility/Helper"
        assert classify_program_unit(code, "Procedure") == "Unknown"

    def test_result_is_known_category(self, sample_form_path):
        module = load_form_module(sample_form_path)
        for unit in module.program_units:
            assert classify_program_unit(unit.text, unit.program_unit_type) in LOGIC_CATEGORIES


class TestSignature:

    def test_parameters(self):
        code = (
            "PROCEDURE p(p_id IN NUMBER, p_out OUT VARCHAR2, p_both IN OUT NOCOPY t_rec,\n"
            "            p_flag BOOLEAN DEFAULT TRUE, p_amt NUMBER(10,2) := 0) IS\n"
            "BEGIN NULL; END;"
        )
        params = extract_parameters(code)
        assert [(p.name, p.mode, p.data_type, p.default_value) for p in params] == [
            ("p_id", "IN", "NUMBER", None),
            ("p_out", "OUT", "VARCHAR2", None),
            ("p_both", "IN OUT", "t_rec", None),
            ("p_flag", "IN", "BOOLEAN", "TRUE"),
            ("p_amt", "IN", "NUMBER(10,2)", "0"),
        ]

    def test_type_starting_with_in(self):
        params = extract_parameters("PROCEDURE p(p_n INTEGER) IS BEGIN NULL; END;")
        assert (params[0].mode, params[0].data_type) == ("IN", "INTEGER")

    def test_no_parameters(self):
        assert extract_parameters("PROCEDURE p IS BEGIN NULL; END;") == []

    def test_return_type(self):
        code = "FUNCTION validate_qty(p_qty IN NUMBER) RETURN BOOLEAN IS\nBEGIN\n  RETURN p_qty > 0;\nEND;"
        assert extract_return_type(code, "Function") == "BOOLEAN"
        assert extract_return_type("FUNCTION f RETURN VARCHAR2 IS BEGIN RETURN 'x'; END;", "Function") == "VARCHAR2"

    def test_procedures_have_no_return_type(self):
        assert extract_return_type("PROCEDURE p IS BEGIN RETURN; END;", "Procedure") is None


class TestScores:

    def test_complexity_of_flat_dml(self):
        assert calculate_complexity(SINGLE_LINE_DML) == 2

    def test_nested_if_rounds_half_up(self):
        code = "IF a THEN\n  IF b THEN\n    x;\n  END IF;\nEND IF;"
        assert calculate_complexity(code) == 5

    def test_complexity_is_clamped(self):
        assert calculate_complexity("NULL;") == 1
        busy = "\n".join("FOR r IN c LOOP NULL; END LOOP;" for _ in range(20))
        assert calculate_complexity(busy) == 10

    def test_impact_levels(self):
        assert calculate_impact_score("UPDATE t SET a = 1;\nINSERT INTO t2 VALUES (1);\nCOMMIT;") == "high"
        assert calculate_impact_score("EXECUTE_QUERY;\nCLEAR_BLOCK;") == "medium"
        assert calculate_impact_score("SELECT 1 INTO v FROM dual;") == "low"

    def test_commented_commit_does_not_score(self):
        assert calculate_impact_score("-- COMMIT;\nNULL;") == "low"

    def test_risk_flags(self):
        code = "\n".join([
            "BEGIN",
            "  HOST('ls');",
            "  FORMS_OLE.activate_server(x);",
            "  UPDATE emp SET x = 1;",
            "  EXECUTE IMMEDIATE v_sql;",
            "  DBMS_OUTPUT.PUT_LINE('x');",
            "END;",
        ])
        assert detect_risk_flags(code) == [
            "Forms builtin: HOST",
            "Forms builtin: FORMS_OLE",
            "Direct DML without explicit COMMIT",
            "Dynamic SQL detected",
            "External package dependencies",
        ]

    def test_dml_with_commit_is_not_flagged(self):
        assert detect_risk_flags("UPDATE emp SET x = 1;\nCOMMIT;") == []


class TestCallers:

    def test_triggers_and_units(self):
        triggers = [
            Trigger("WHEN-BUTTON-PRESSED", "save_order;", "ORDERS", "SAVE_BTN"),
            Trigger("KEY-COMMIT", "save_order;\nCOMMIT_FORM;"),
            Trigger("WHEN-NEW-FORM-INSTANCE", "NULL;"),
        ]
        units = [
            ProgramUnit("OTHER", "Procedure", "PROCEDURE other IS BEGIN save_order; END;"),
            ProgramUnit("SAVE_ORDER", "Procedure", "PROCEDURE save_order IS BEGIN COMMIT; END;"),
        ]
        assert find_callers("SAVE_ORDER", units, triggers) == [
            "Trigger: WHEN-BUTTON-PRESSED (ORDERS.SAVE_BTN)",
            "Trigger: KEY-COMMIT",
            "OTHER",
        ]

    def test_unit_dependencies(self):
        units = [
            ProgramUnit("A", "Procedure", "PROCEDURE a IS BEGIN a; b(1); c; d_x; END;"),
            ProgramUnit("B", "Procedure", "PROCEDURE b(n NUMBER) IS BEGIN NULL; END;"),
            ProgramUnit("C", "Procedure", "PROCEDURE c IS BEGIN NULL; END;"),
            ProgramUnit("D", "Procedure", "PROCEDURE d IS BEGIN NULL; END;"),
        ]
        enriched = analyze_program_unit(units[0], units, [])
        assert enriched.dependencies == ["B", "C"]


class TestMainFunctions:

    def test_called_by_many_triggers(self, make_unit):
        unit = make_unit("A", called_by=["Trigger: X", "Trigger: Y", "B"])
        flagged = identify_main_functions([unit])[0]
        assert flagged.is_main_function is True
        assert flagged.main_function_reason == "Called by 2 triggers"
        assert flagged.business_responsibility == "Implements core business logic for a"

    def test_reasons_are_joined(self, make_unit):
        unit = make_unit(
            "SAVE_ORDER",
            classification="Transaction Logic",
            dependencies=["A", "B", "C"],
            text="PROCEDURE save_order IS BEGIN a; b; c; COMMIT; END;",
        )
        flagged = identify_main_functions([unit])[0]
        assert flagged.main_function_reason == "Transaction controller; Orchestrates 3 program units"
        assert flagged.business_responsibility == (
            "Manages data persistence and transaction control for save order"
        )

    def test_high_complexity_and_substantial_logic(self, make_unit):
        risky = make_unit("R", complexity=8, impact_score="high", classification="UI Logic")
        big = make_unit("B", line_count=51)
        flagged = identify_main_functions([risky, big])
        assert flagged[0].main_function_reason == "High complexity and high impact"
        assert flagged[1].main_function_reason == "Substantial business logic"

    def test_plain_unit_not_flagged(self, make_unit):
        result = identify_main_functions([make_unit("PLAIN")])[0]
        assert result.is_main_function is False
        assert result.main_function_reason is None

    def test_inputs_not_mutated(self, make_unit):
        unit = make_unit("A", called_by=["Trigger: X", "Trigger: Y"])
        result = identify_main_functions([unit])
        assert unit.is_main_function is False
        assert result[0] is not unit
