import json
import logging

import fitz
import pytest

from inkform.config import EditorConfig, load_config, save_config
from inkform.core.document import DocumentRegistry
from inkform.core.export import ExportWorker
from inkform.core.page import ViewPage
from inkform.utils import configure_logging


class TestEditorConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "absent.json"))
        assert config == EditorConfig()

    def test_broken_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_config(str(path)) == EditorConfig()

    def test_unknown_keys_are_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "history_limit": 10,
            "theme": "dark",
            "tool_settings": {"stamp_text": "PAID", "sparkles": True},
        }), encoding="utf-8")
        config = load_config(str(path))
        assert config.history_limit == 10
        assert config.tool_settings.stamp_text == "PAID"
        assert config.tool_settings.font_size == 16.0

    def test_saved_config_loads_back(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = EditorConfig(max_zoom=3.0, lock_filled_fields=True)
        config.tool_settings.stroke_color = "#123456"
        save_config(config, str(path))
        assert load_config(str(path)) == config

    @pytest.mark.parametrize("scale, expected", [(0.1, 0.25), (1.5, 1.5), (9, 4.0)])
    def test_clamp_zoom(self, scale, expected):
        assert EditorConfig().clamp_zoom(scale) == expected


class TestConfigureLogging:
    @pytest.fixture
    def clean_root(self):
        root = logging.getLogger()
        handlers = list(root.handlers)
        level = root.level
        yield root
        for handler in list(root.handlers):
            if handler not in handlers:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)
        if hasattr(root, "_inkform_configured"):
            delattr(root, "_inkform_configured")

    def test_handlers_added_once(self, clean_root, tmp_path):
        before = len(clean_root.handlers)
        log_path = tmp_path / "inkform.log"
        configure_logging(debug=True, log_path=str(log_path))
        configure_logging(debug=True, log_path=str(log_path))
        assert len(clean_root.handlers) == before + 2

        logging.getLogger("inkform.test").info("hello")
        for handler in clean_root.handlers:
            handler.flush()
        assert "hello" in log_path.read_text(encoding="utf-8")


class TestExportWorker:
    @pytest.fixture
    def registry(self, pdf_bytes):
        registry = DocumentRegistry()
        registry.load_main(pdf_bytes, "main.pdf")
        return registry

    def test_success_signal(self, registry):
        worker = ExportWorker(registry, [ViewPage("main:2", "main", 2)], {}, 1.0)
        results, pages = [], []
        worker.succeeded.connect(results.append)
        worker.page_progress.connect(lambda current, total: pages.append((current, total)))
        worker.run()

        assert worker.error is None
        assert pages == [(1, 1)]
        doc = fitz.open(stream=results[0], filetype="pdf")
        assert "Main 2" in doc[0].get_text()

    def test_failure_signal(self, registry):
        worker = ExportWorker(registry, [ViewPage("x:1", "missing", 1)], {}, 1.0)
        errors = []
        worker.failed.connect(errors.append)
        worker.run()

        assert worker.result is None
        assert errors == [worker.error]

    def test_unexpected_error_still_reports_failure(self, registry, monkeypatch):
        worker = ExportWorker(registry, [ViewPage("main:1", "main", 1)], {}, 1.0)

        def broken_export(*args, **kwargs):
            raise TypeError("unsupported operand")

        monkeypatch.setattr(worker.exporter, "export", broken_export)
        errors = []
        worker.failed.connect(errors.append)
        worker.run()

        assert worker.result is None
        assert len(errors) == 1
        assert "unsupported operand" in errors[0]
