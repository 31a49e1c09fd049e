"""Tests for unit boundary extraction."""

from formsgraph.boundary import extract_boundaries, find_unit_starts, strip_line


class TestUnitStarts:
    """Declaration scanning."""

    def test_finds_procedures_and_functions(self, sample_package_source: str):
        starts = find_unit_starts(sample_package_source.split("\n"))
        assert [(s.name, s.type) for s in starts] == [
            ("VALIDATE_ORDER", "Function"),
            ("SUBMIT_ORDER", "Procedure"),
            ("REFRESH_SCREEN", "Procedure"),
        ]

    def test_create_or_replace_prefix(self):
        starts = find_unit_starts(["CREATE OR REPLACE PROCEDURE load_data IS"])
        assert starts[0].name == "LOAD_DATA"

    def test_commented_declaration_ignored(self):
        assert find_unit_starts(["-- PROCEDURE old_code IS"]) == []

    def test_strip_line_blanks_strings_and_comments(self):
        assert strip_line("x := 'END;'; -- END foo;") == "x := ''; "


class TestBoundaries:
    """End detection."""

    def test_package_body_ranges(self, sample_package_source: str):
        boundaries = extract_boundaries(sample_package_source)
        assert [(b.name, b.start_line, b.end_line) for b in boundaries] == [
            ("VALIDATE_ORDER", 4, 12),
            ("SUBMIT_ORDER", 14, 24),
            ("REFRESH_SCREEN", 26, 31),
        ]

    def test_ranges_do_not_overlap(self, sample_package_source: str):
        boundaries = extract_boundaries(sample_package_source)
        for previous, current in zip(boundaries, boundaries[1:]):
            assert previous.start_line <= previous.end_line < current.start_line

    def test_single_line_unit(self):
        source = "PROCEDURE P1 IS BEGIN INSERT INTO T1 VALUES (1); UPDATE T2 SET X=1; END P1;"
        boundaries = extract_boundaries(source)
        assert len(boundaries) == 1
        assert (boundaries[0].start_line, boundaries[0].end_line) == (1, 1)

    def test_end_if_and_end_loop_do_not_close_unit(self):
        source = "\n".join([
            "PROCEDURE work IS",
            "BEGIN",
            "  FOR r IN c LOOP",
            "    IF r.x THEN",
            "      NULL;",
            "    END IF;",
            "  END LOOP;",
            "END;",
            "",
        ])
        boundaries = extract_boundaries(source)
        assert boundaries[0].end_line == 8

    def test_nested_block_counts_depth(self):
        source = "\n".join([
            "PROCEDURE outer_proc IS",
            "BEGIN",
            "  BEGIN",
            "    NULL;",
            "  EXCEPTION WHEN OTHERS THEN NULL;",
            "  END;",
            "  NULL;",
            "END;",
        ])
        assert extract_boundaries(source)[0].end_line == 8

    def test_end_inside_string_is_ignored(self):
        source = "\n".join([
            "PROCEDURE say IS",
            "BEGIN",
            "  MESSAGE('END;');",
            "END;",
        ])
        assert extract_boundaries(source)[0].end_line == 4

    def test_unterminated_unit_stops_before_next_declaration(self):
        source = "\n".join([
            "PROCEDURE broken IS",
            "BEGIN",
            "  NULL;",
            "PROCEDURE fine IS",
            "BEGIN",
            "  NULL;",
            "END fine;",
        ])
        boundaries = extract_boundaries(source)
        assert (boundaries[0].start_line, boundaries[0].end_line) == (1, 3)
        assert (boundaries[1].start_line, boundaries[1].end_line) == (4, 7)

    def test_unterminated_last_unit_runs_to_eof(self):
        source = "PROCEDURE broken IS\nBEGIN\n  NULL;"
        assert extract_boundaries(source)[0].end_line == 3

    def test_crlf_input(self):
        source = "PROCEDURE a IS\r\nBEGIN\r\n  NULL;\r\nEND a;\r\n"
        assert extract_boundaries(source)[0].end_line == 4

    def test_no_units(self):
        assert extract_boundaries("SELECT * FROM dual;") == []
