"""Tests for JSON, DOT, and SQL exports."""

import json
from pathlib import Path

from formsgraph.export import export_dot, export_json, export_sql, render_dot, render_sql, to_json
from formsgraph.hierarchy import build_program_unit_node
from formsgraph.models import FormLogicHierarchy
from formsgraph.orchestrator import AnalysisOrchestrator
from formsgraph.parser import PLSQLParser


class TestJson:

    def test_form_analysis_serializes(self, sample_form_path: Path):
        analysis = AnalysisOrchestrator().analyze_form_xml(sample_form_path)
        data = json.loads(to_json(analysis))

        assert data["form_name"] == "ORDERS_FORM"
        assert [u["name"] for u in data["program_units"]] == [
            "INIT_FORM", "SAVE_ORDER", "VALIDATE_QTY", "GET_TOTAL",
        ]
        assert data["readiness"]["estimated_effort"] == "14-20 hours"
        assert data["hierarchy"]["entry_points"][1]["children"][0]["name"] == "SAVE_ORDER"

    def test_output_is_stable(self, sample_package_source: str):
        parser = PLSQLParser()
        assert to_json(parser.parse(sample_package_source)) == to_json(parser.parse(sample_package_source))

    def test_export_json_file(self, temp_dir: Path, sample_package_source: str):
        output = temp_dir / "units.json"
        export_json(PLSQLParser().parse(sample_package_source), output)
        data = json.loads(output.read_text(encoding="utf-8"))
        assert [u["name"] for u in data] == ["VALIDATE_ORDER", "SUBMIT_ORDER", "REFRESH_SCREEN"]
        assert data[1]["dependencies"]["called_procedures"] == ["VALIDATE_ORDER"]


class TestDot:

    def test_clusters_and_edges(self, sample_form_path: Path):
        hierarchy = AnalysisOrchestrator().analyze_form_xml(sample_form_path).hierarchy
        dot = render_dot(hierarchy)

        assert dot.startswith("digraph FormLogic {")
        assert dot.endswith("}")
        assert 'subgraph "cluster_entry_points"' in dot
        assert 'label="Entry Points";' in dot
        assert 'label="KEY-COMMIT\\nTransaction Logic / medium", shape=ellipse' in dot
        assert '"n1" -> "n2";' in dot

    def test_empty_sections_skipped(self):
        dot = render_dot(FormLogicHierarchy())
        assert "subgraph" not in dot

    def test_quotes_escaped(self, make_unit):
        node = build_program_unit_node(make_unit('ODD"NAME'), {})
        dot = render_dot(FormLogicHierarchy(core_business_controllers=[node]))
        assert 'ODD\\"NAME' in dot

    def test_export_dot_file(self, temp_dir: Path):
        output = temp_dir / "h.dot"
        export_dot(FormLogicHierarchy(), output)
        assert output.read_text(encoding="utf-8").startswith("digraph")


class TestSql:

    def test_units_with_headers(self, sample_package_source: str):
        sql = render_sql(PLSQLParser().parse(sample_package_source))

        assert "-- Procedure: SUBMIT_ORDER (lines 14-24)" in sql
        assert "-- Forms built-ins commented out: 2" in sql
        assert "-- GO_BLOCK('ORDERS');" in sql
        assert "END orders_pkg;" not in sql

    def test_export_sql_file(self, temp_dir: Path, sample_package_source: str):
        output = temp_dir / "out.sql"
        export_sql(PLSQLParser().parse(sample_package_source), output)
        assert "REFRESH_SCREEN" in output.read_text(encoding="utf-8")
