"""Tests for semantic pattern detection."""

from formsgraph.parser import PLSQLParser
from formsgraph.patterns import PATTERN_INFO, detect_semantic_patterns


def _ids(code: str, first_line: int = 1):
    return [p.id for p in detect_semantic_patterns(code, first_line).patterns]


def _pattern(code: str, pattern_id: str):
    for pattern in detect_semantic_patterns(code).patterns:
        if pattern.id == pattern_id:
            return pattern
    return None


class TestScenarios:

    def test_loop_with_exit_is_multi_record_only(self):
        code = "\n".join([
            "PROCEDURE wait_ready IS",
            "BEGIN",
            "  LOOP",
            "    EXIT WHEN v_n > 10;",
            "    v_n := v_n * 2;",
            "  END LOOP;",
            "END wait_ready;",
        ])
        assert _ids(code) == ["multi-record-processing"]

    def test_lone_if_fires_nothing(self):
        code = "\n".join([
            "PROCEDURE set_y IS",
            "BEGIN",
            "  IF x THEN",
            "    y;",
            "  END IF;",
            "END set_y;",
        ])
        result = detect_semantic_patterns(code)
        assert result.patterns == []
        assert result.summary == {"critical": 0, "important": 0, "info": 0}

    def test_cross_entity_on_single_line(self):
        source = "PROCEDURE P1 IS BEGIN INSERT INTO T1 VALUES (1); UPDATE T2 SET X=1; END P1;"
        pattern = _pattern(source, "cross-entity-side-effects")
        assert pattern is not None
        assert pattern.severity == "CRITICAL"
        assert pattern.matched_code == ["T1", "T2"]
        assert "T1, T2" in pattern.description


class TestDetectors:

    def test_loop_without_exit_does_not_fire(self):
        assert "multi-record-processing" not in _ids("LOOP\n  NULL;\nEND LOOP;")

    def test_selection_driven(self):
        assert "selection-driven-execution" in _ids("IF :blk.sel = 'Y' THEN\n  NULL;\nEND IF;")

    def test_multiple_modes_need_branches(self):
        code = "IF :ctrl.mode = 'A' THEN\n  x;\nELSIF :ctrl.mode = 'B' THEN\n  y;\nEND IF;"
        assert "multiple-execution-modes" in _ids(code)
        assert "multiple-execution-modes" not in _ids("IF :ctrl.mode = 'A' THEN\n  x;\nEND IF;")

    def test_user_decision(self):
        code = "v_btn := SHOW_ALERT('CONFIRM_DEL');\nIF v_btn = ALERT_BUTTON1 THEN\n  delete_row;\nEND IF;"
        assert "user-decision-gated-logic" in _ids(code)

    def test_dialog_without_branch_is_not_decision(self):
        assert "user-decision-gated-logic" not in _ids("v_x := SHOW_ALERT('INFO_ONLY');")

    def test_branch_without_dialog_is_not_decision(self):
        code = "IF answer = 1 THEN\n  NULL;\nEND IF;"
        assert "user-decision-gated-logic" not in _ids(code)

    def test_implicit_abort(self):
        assert "implicit-abort-flow" in _ids("IF bad THEN\n  RAISE FORM_TRIGGER_FAILURE;\nEND IF;")
        assert "implicit-abort-flow" in _ids("IF done THEN\n  RETURN;\nEND IF;")

    def test_label_alone_is_not_abort(self):
        assert "implicit-abort-flow" not in _ids("<<main_block>>\nBEGIN\n  NULL;\nEND;")

    def test_single_table_dml_is_not_cross_entity(self):
        code = "UPDATE emp SET x = 1;\nDELETE FROM emp WHERE y = 2;"
        assert "cross-entity-side-effects" not in _ids(code)

    def test_state_accumulation(self):
        assert "state-accumulation" in _ids("TYPE t_ids IS TABLE OF NUMBER;\nv_ids.EXTEND;")

    def test_outcome_chaining_needs_two_signals(self):
        one = "UPDATE emp SET x = 1;\nIF SQL%ROWCOUNT = 0 THEN NULL; END IF;"
        two = one + "\nv_success := TRUE;"
        assert "outcome-dependent-chaining" not in _ids(one)
        assert "outcome-dependent-chaining" in _ids(two)

    def test_mixed_responsibilities(self):
        code = "\n".join([
            "IF p_qty IS NULL THEN",
            "  MESSAGE('Quantity required');",
            "END IF;",
            "UPDATE stock SET qty = p_qty;",
        ])
        pattern = _pattern(code, "mixed-responsibilities")
        assert pattern is not None
        assert pattern.matched_code == ["Validation logic", "User messaging", "DML operations"]
        assert pattern.line_numbers == [1, 2, 4]

    def test_closing_message_feedback(self):
        code = "\n".join(["x := 1;"] * 8 + ["MESSAGE('Saved');", "END;"])
        assert "business-outcome-ui-feedback" in _ids(code)


class TestResultShape:

    def test_at_most_one_pattern_per_detector(self):
        code = "\n".join(["RAISE e1;", "RAISE e2;", "GOTO done;"])
        ids = _ids(code)
        assert ids.count("implicit-abort-flow") == 1

    def test_line_numbers_in_file_coordinates(self):
        result = detect_semantic_patterns("x;\nRAISE e1;", first_line=100)
        abort = [p for p in result.patterns if p.id == "implicit-abort-flow"][0]
        assert abort.line_numbers == [101]

    def test_excerpt_limit(self):
        code = "\n".join(f"RAISE e{i};" for i in range(10))
        result = detect_semantic_patterns(code, excerpt_limit=3)
        abort = [p for p in result.patterns if p.id == "implicit-abort-flow"][0]
        assert len(abort.line_numbers) == 3

    def test_severity_fixed_per_id(self, sample_package_source: str):
        for unit in PLSQLParser().parse(sample_package_source):
            for pattern in unit.semantic_patterns.patterns:
                assert pattern.severity == PATTERN_INFO[pattern.id].severity
