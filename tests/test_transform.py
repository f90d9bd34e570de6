"""Tests for the source-to-source build step."""

import textwrap

import pytest

from pyrsx.core.errors import ConfigurationError, RsxSemanticError, RsxSyntaxError
from pyrsx.engine.rsx_compiler import CompilerOptions
from pyrsx.engine.transform import (
    SourceTransformer,
    build,
    collect_sources,
    output_path,
    transform_file,
    transform_source,
)

from tests.conftest import write


PARAGRAPH = '(dom.element("p").children([dom.text_reactive(count.signal().map(lambda value: f"{value}"))]))'

MODULE = textwrap.dedent('''\
    from runtime import dom, events


    def view(count):
        return rsx("<p>{count}</p>")


    TITLE = "rsx"
''')


class TestTransformSource:

    def setup_method(self):
        self.options = CompilerOptions()

    def test_call_is_replaced_and_rest_kept(self, metadata):
        result = transform_source(MODULE, "views.rsx.py", self.options, metadata)
        assert result == MODULE.replace('rsx("<p>{count}</p>")', PARAGRAPH)

    def test_module_without_markup_is_unchanged(self, metadata):
        source = "x = 1\nprint(x)\n"
        assert transform_source(source, options=self.options, metadata=metadata) == source

    def test_several_calls_on_one_line(self, metadata):
        result = transform_source('items = [rsx("<br/>"), rsx("<hr/>")]\n', options=self.options, metadata=metadata)
        assert result == 'items = [(dom.element("br")), (dom.element("hr"))]\n'

    def test_non_ascii_before_call(self, metadata):
        result = transform_source('x = "é"; y = rsx("<br/>")\n', options=self.options, metadata=metadata)
        assert result == 'x = "é"; y = (dom.element("br"))\n'

    def test_triple_quoted_markup(self, metadata):
        source = textwrap.dedent('''\
            view = rsx("""
                <ul>
                    <li>{item}</li>
                </ul>
            """)
        ''')
        result = transform_source(source, options=self.options, metadata=metadata)
        assert result.startswith('view = (dom.element("ul").children([dom.element("li")')
        compile(result, "<result>", "exec")

    def test_nested_call_sites(self, metadata):
        source = 'def outer():\n    def inner():\n        return rsx("<br/>")\n    return rsx("<hr/>")\n'
        result = transform_source(source, options=self.options, metadata=metadata)
        assert 'return (dom.element("br"))' in result
        assert 'return (dom.element("hr"))' in result

    def test_marker_from_config(self, metadata, fresh_config):
        fresh_config.set("transform.marker", "html")
        source = 'a = html("<br/>")\nb = rsx("<br/>")\n'
        result = SourceTransformer(options=self.options, metadata=metadata).transform(source).source
        assert result == 'a = (dom.element("br"))\nb = rsx("<br/>")\n'

    def test_attribute_calls_are_not_markers(self, metadata):
        source = 'a = ui.rsx("<br/>")\n'
        assert transform_source(source, options=self.options, metadata=metadata) == source

    def test_result_collects_compiled_markup(self, metadata):
        transformer = SourceTransformer(options=self.options, metadata=metadata)
        result = transformer.transform('a = rsx("<widget/>")\nb = rsx("<Foo/>")\n', "w.rsx.py")
        assert [c.name for c in result.compiled] == ["w.rsx.py:1", "w.rsx.py:2"]
        assert result.warnings == ["unknown element <widget>"]


class TestTransformErrors:

    def setup_method(self):
        self.transformer = SourceTransformer(options=CompilerOptions())

    def test_error_mapped_to_file_position(self, metadata):
        self.transformer.metadata = metadata
        with pytest.raises(RsxSemanticError) as info:
            self.transformer.transform('view = rsx("<div>x</span>")\n', "app.rsx.py")
        error = info.value
        assert error.filename == "app.rsx.py"
        assert (error.line, error.column) == (1, 19)
        assert error.format().startswith("app.rsx.py:1:19: semantic error")

    def test_error_in_multiline_markup(self, metadata):
        self.transformer.metadata = metadata
        source = "view = rsx('''\n<div>\n  <p>x</b>\n</div>\n''')\n"
        with pytest.raises(RsxSemanticError) as info:
            self.transformer.transform(source, "app.rsx.py")
        assert (info.value.line, info.value.column) == (3, 7)

    def test_escaped_literal_reports_markup_position(self, metadata):
        self.transformer.metadata = metadata
        with pytest.raises(RsxSemanticError) as info:
            self.transformer.transform('view = rsx("<div>\\n</span>")\n', "app.rsx.py")
        assert info.value.filename == "app.rsx.py (rsx() at line 1)"
        assert info.value.source == "<div>\n</span>"
        assert info.value.line == 2

    def test_metadata_error_is_not_bound_to_markup(self, tmp_path, fresh_config):
        fresh_config.set("metadata.attributes", str(tmp_path / "missing.json"))
        errors = []
        for filename in ("a.rsx.py", "b.rsx.py"):
            with pytest.raises(ConfigurationError) as info:
                self.transformer.transform('view = rsx("<br/>")\n', filename)
            errors.append(info.value)

        assert all(e.filename is None and e.source is None for e in errors)
        assert errors[0].__cause__ is errors[1].__cause__

    def test_marker_needs_string_literal(self):
        with pytest.raises(RsxSyntaxError, match="takes exactly one string literal"):
            self.transformer.transform("view = rsx(markup)\n")

    def test_marker_rejects_f_strings(self):
        with pytest.raises(RsxSyntaxError, match="takes exactly one string literal"):
            self.transformer.transform('view = rsx(f"<p>{x}</p>")\n')

    def test_invalid_module(self):
        with pytest.raises(RsxSyntaxError, match="invalid Python module"):
            self.transformer.transform("def broken(:\n")


class TestFiles:

    def test_output_path(self, tmp_path):
        assert output_path(tmp_path / "views.rsx.py") == tmp_path / "views.py"
        assert output_path(tmp_path / "views.pyrsx") == tmp_path / "views.py"
        with pytest.raises(ValueError):
            output_path(tmp_path / "views.py")

    def test_transform_file(self, tmp_path):
        source = write(tmp_path / "views.rsx.py", 'view = rsx("<br/>")\n')
        written = transform_file(source)
        assert written == tmp_path / "views.py"
        assert written.read_text(encoding="utf-8") == 'view = (dom.element("br"))\n'

    def test_explicit_output(self, tmp_path):
        source = write(tmp_path / "views.py", 'view = rsx("<br/>")\n')
        written = transform_file(source, tmp_path / "out" / "views.py")
        assert written.read_text(encoding="utf-8") == 'view = (dom.element("br"))\n'

    def test_refuses_to_overwrite_input(self, tmp_path):
        source = write(tmp_path / "views.py", 'view = rsx("<br/>")\n')
        with pytest.raises(ValueError):
            transform_file(source, source)

    def test_failed_transform_writes_nothing(self, tmp_path):
        source = write(tmp_path / "views.rsx.py", 'view = rsx("<div></p>")\n')
        with pytest.raises(RsxSemanticError):
            transform_file(source)
        assert not (tmp_path / "views.py").exists()


class TestBuild:

    def test_build_directory(self, tmp_path, log_records):
        write(tmp_path / "app" / "a.rsx.py", 'a = rsx("<br/>")\n')
        write(tmp_path / "app" / "sub" / "b.pyrsx", 'b = rsx("<hr/>")\n')
        write(tmp_path / "app" / "plain.py", "c = 1\n")

        written = build([tmp_path / "app"])

        assert written == [tmp_path / "app" / "a.py", tmp_path / "app" / "sub" / "b.py"]
        assert (tmp_path / "app" / "sub" / "b.py").read_text(encoding="utf-8") == 'b = (dom.element("hr"))\n'
        assert "Transformed module" in log_records.messages()
        assert "Build finished" in log_records.messages()

    def test_collect_sources_keeps_files(self, tmp_path):
        path = write(tmp_path / "x.pyrsx", "")
        assert collect_sources([path]) == [path]

    def test_build_stops_on_error(self, tmp_path, log_records):
        write(tmp_path / "a.rsx.py", 'a = rsx("<div></p>")\n')
        with pytest.raises(RsxSemanticError):
            build([tmp_path])
        assert "Transform failed" in log_records.messages()
