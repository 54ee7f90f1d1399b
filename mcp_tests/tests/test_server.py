import sys
import types
import uuid
import importlib.util
from pathlib import Path


def _find_server_py() -> Path:
    # Try common layouts:
    # 1) <root>/server.py
    # 2) <root>/server/server.py
    # 3) <root>/src/server/server.py
    root = Path(__file__).resolve().parents[2]
    candidates = [
        root / "server.py",
        root / "server" / "server.py",
        root / "src" / "server" / "server.py",
    ]
    for p in candidates:
        if p.exists():
            return p
    raise FileNotFoundError(f"Could not find server.py. Tried: {candidates}")


def _install_fake_modules(monkeypatch, captures: dict):
    # ---- Fake mcp.server.fastmcp.FastMCP ----
    mcp_mod = types.ModuleType("mcp")
    mcp_server_mod = types.ModuleType("mcp.server")
    fastmcp_mod = types.ModuleType("mcp.server.fastmcp")

    class DummyFastMCP:
        def __init__(self, name: str):
            captures["fastmcp_name"] = name
            captures["mcp_instance"] = self
            self.run_calls = []

        def run(self, *, transport: str):
            self.run_calls.append({"transport": transport})
            captures["run_calls"] = list(self.run_calls)

    fastmcp_mod.FastMCP = DummyFastMCP

    # Mark package structure
    mcp_mod.__path__ = []
    mcp_server_mod.__path__ = []

    monkeypatch.setitem(sys.modules, "mcp", mcp_mod)
    monkeypatch.setitem(sys.modules, "mcp.server", mcp_server_mod)
    monkeypatch.setitem(sys.modules, "mcp.server.fastmcp", fastmcp_mod)

    # ---- Fake config ----
    config_mod = types.ModuleType("config")
    config_mod.DATA_ROOT = Path("/tmp/doccache-test")
    config_mod.CACHE_TIMEOUT_MS = 1500.0
    config_mod.CACHE_POLICY = "timer"
    config_mod.CACHE_SWEEP_INTERVAL_MS = 250.0
    config_mod.CACHE_SHARDS = 4
    config_mod.LOG_LEVEL = "DEBUG"
    monkeypatch.setitem(sys.modules, "config", config_mod)

    # ---- Fake database ----
    def _ensure_pkg(name: str):
        pkg = types.ModuleType(name)
        pkg.__path__ = []
        monkeypatch.setitem(sys.modules, name, pkg)

    _ensure_pkg("documents")
    db_mod = types.ModuleType("documents.database")

    class FakeDatabase:
        def __init__(self, root, **kwargs):
            captures["database_ctor_calls"] = captures.get("database_ctor_calls", []) + [
                {"root": root, **kwargs}
            ]
            captures["database_instance"] = self
            self.close_calls = 0

        def close(self):
            self.close_calls += 1

    db_mod.Database = FakeDatabase
    monkeypatch.setitem(sys.modules, "documents.database", db_mod)

    # ---- Fake tools ----
    _ensure_pkg("tools")

    tools_docs_mod = types.ModuleType("tools.documents")
    tools_cache_mod = types.ModuleType("tools.cache_tools")

    def register_document_tools(mcp, *, database):
        captures["register_document_tools_calls"] = captures.get("register_document_tools_calls", []) + [
            {"mcp": mcp, "database": database}
        ]

    def register_cache_tools(mcp, *, database):
        captures["register_cache_tools_calls"] = captures.get("register_cache_tools_calls", []) + [
            {"mcp": mcp, "database": database}
        ]

    tools_docs_mod.register = register_document_tools
    tools_cache_mod.register = register_cache_tools

    monkeypatch.setitem(sys.modules, "tools.documents", tools_docs_mod)
    monkeypatch.setitem(sys.modules, "tools.cache_tools", tools_cache_mod)


def _load_server_module(monkeypatch, captures: dict):
    _install_fake_modules(monkeypatch, captures)

    server_path = _find_server_py()
    mod_name = f"server_under_test_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(mod_name, server_path)
    assert spec and spec.loader

    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, mod_name, module)
    spec.loader.exec_module(module)
    return module


def test_server_register_all_and_di(monkeypatch):
    captures = {}
    module = _load_server_module(monkeypatch, captures)

    assert captures["fastmcp_name"] == "doccache-mcp"
    mcp = captures["mcp_instance"]

    # One database built from config
    assert captures["database_ctor_calls"] == [
        {
            "root": Path("/tmp/doccache-test"),
            "cache_timeout_ms": 1500.0,
            "policy": "timer",
            "sweep_interval_ms": 250.0,
            "shards": 4,
        }
    ]
    db = captures["database_instance"]

    # Both tool groups receive the SAME injected database
    assert len(captures.get("register_document_tools_calls", [])) == 1
    assert len(captures.get("register_cache_tools_calls", [])) == 1
    assert captures["register_document_tools_calls"][0]["database"] is db
    assert captures["register_cache_tools_calls"][0]["database"] is db
    assert captures["register_document_tools_calls"][0]["mcp"] is mcp
    assert captures["register_cache_tools_calls"][0]["mcp"] is mcp

    # main() configures logging, runs stdio transport and closes the database
    logging_calls = []
    monkeypatch.setattr(module.logging, "basicConfig", lambda **kw: logging_calls.append(kw))

    module.main()
    assert captures["run_calls"] == [{"transport": "stdio"}]
    assert db.close_calls == 1
    assert logging_calls[0]["level"] == module.logging.DEBUG
    assert logging_calls[0]["stream"] is sys.stderr
