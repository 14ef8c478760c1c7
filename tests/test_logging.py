import json
import logging

from auh import config
from auh import logging as auh_logging
from auh.logging import JSONLineFormatter, ModuleLevelFilter


def _record(level=logging.INFO, module="scheduler", msg="hello %s", args=("world",)):
    rec = logging.LogRecord("auh", level, __file__, 1, msg, args, None)
    rec.auh_module = module
    return rec


def test_adapter_injects_module(caplog):
    log = auh_logging.get_logger("probe")
    with caplog.at_level(logging.INFO, logger="auh"):
        log.info("primary is up")
    rec = caplog.records[-1]
    assert rec.auh_module == "probe"
    assert rec.getMessage() == "primary is up"


def test_jsonl_formatter():
    obj = json.loads(JSONLineFormatter().format(_record()))
    assert obj["module"] == "scheduler"
    assert obj["message"] == "hello world"
    assert obj["level"] == "INFO"


def test_module_level_filter():
    f = ModuleLevelFilter({"fetcher": "ERROR"})
    assert not f.filter(_record(level=logging.WARNING, module="fetcher"))
    assert f.filter(_record(level=logging.ERROR, module="fetcher"))
    assert f.filter(_record(level=logging.DEBUG, module="scheduler"))


def test_jsonl_file_written_after_reload(isolated_config, tmp_path):
    path = tmp_path / "log.jsonl"
    isolated_config.merged["logging"]["jsonl"] = {"enabled": True, "path": str(path), "level": "INFO"}
    config.set_config(isolated_config)
    auh_logging.get_logger("cli").warning("written")
    for h in logging.getLogger("auh").handlers:
        h.flush()
    lines = [json.loads(l) for l in path.read_text().splitlines()]
    assert lines[-1]["module"] == "cli"
    assert lines[-1]["message"] == "written"


def test_metrics_count_levels():
    before = auh_logging.get_metrics()["ERROR"]
    auh_logging.get_logger("cli").error("counted")
    assert auh_logging.get_metrics()["ERROR"] == before + 1


def test_metrics_count_child_logger_records(tmp_path):
    before = auh_logging.get_metrics()["WARNING"]
    logging.getLogger("auh.config").warning("config: something odd")
    # a missing explicit file is logged as a warning by auh.config
    config.load(str(tmp_path / "absent.yaml"))
    assert auh_logging.get_metrics()["WARNING"] == before + 2


def test_module_levels_apply_on_handlers(isolated_config, tmp_path):
    path = tmp_path / "levels.jsonl"
    isolated_config.merged["logging"]["jsonl"] = {"enabled": True, "path": str(path), "level": "DEBUG"}
    isolated_config.merged["logging"]["module_levels"] = {"fetcher": "ERROR"}
    config.set_config(isolated_config)
    auh_logging.get_logger("fetcher").warning("hidden")
    auh_logging.get_logger("fetcher").error("shown")
    messages = [json.loads(l)["message"] for l in path.read_text().splitlines()]
    assert messages == ["shown"]
