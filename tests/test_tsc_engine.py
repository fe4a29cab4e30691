"""Tests for the tsc-backed compilation engine.

subprocess.run is replaced with a fake so no Node toolchain is needed; the
fake records the project file tsc would have been given.
"""

import json
import subprocess

import pytest

from tsorchestra.config import get_typescript_config
from tsorchestra.engine import TscEngine, find_tsc, parse_tsc_output
from tsorchestra.engine.tsc import TSC_ENV_VAR
from tsorchestra.errors import EngineError, EngineNotFoundError
from tsorchestra.schemas import DiagnosticMessageChain, SourceFile


class FakeTsc:
    """Stands in for subprocess.run; replies with canned tsc output."""

    def __init__(self, stdout="", returncode=0, stderr=""):
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr
        self.commands = []
        self.projects = []

    def __call__(self, command, **kwargs):
        self.commands.append(command)
        with open(command[2], encoding="utf-8") as f:
            self.projects.append(json.loads(f.read()))
        return subprocess.CompletedProcess(command, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def fake_tsc(monkeypatch):
    def install(**kwargs):
        fake = FakeTsc(**kwargs)
        monkeypatch.setattr("tsorchestra.engine.tsc.subprocess.run", fake)
        return fake
    return install


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.ts").write_text("const a = 1;\nconst b: string = 2;\n")
    return tmp_path


def engine_for(project):
    return TscEngine(tsc_path="/usr/bin/tsc", cwd=project)


class TestParseTscOutput:
    def test_located_diagnostic(self):
        source = SourceFile("src/a.ts", "const a = 1;\nconst b: string = 2;\n")
        output = parse_tsc_output(
            "src/a.ts(2,7): error TS2322: Type 'number' is not assignable to type 'string'.\n",
            lambda name: source,
        )
        [diagnostic] = output.diagnostics
        assert diagnostic.code == 2322
        assert diagnostic.start == 19
        assert diagnostic.file is source
        assert diagnostic.location() == (2, 7)

    def test_global_diagnostic(self):
        output = parse_tsc_output("error TS5023: Unknown compiler option 'foo'.\n", lambda name: None)
        [diagnostic] = output.diagnostics
        assert diagnostic.file is None
        assert diagnostic.code == 5023
        assert diagnostic.message == "Unknown compiler option 'foo'."

    def test_continuation_lines_build_chain(self):
        output = parse_tsc_output(
            "src/a.ts(1,1): error TS2322: Outer.\n"
            "  Middle.\n"
            "    Inner.\n",
            lambda name: SourceFile(name, "x"),
        )
        [diagnostic] = output.diagnostics
        assert isinstance(diagnostic.message_text, DiagnosticMessageChain)
        assert diagnostic.message == "Outer.\n  Middle.\n    Inner."

    def test_emitted_files_and_other_lines(self):
        output = parse_tsc_output(
            "TSFILE: /p/dist/a.js\n"
            "TSFILE: /p/dist/a.js.map\n"
            "/p/src/a.ts\n",
            lambda name: None,
        )
        assert output.emitted_files == ["/p/dist/a.js", "/p/dist/a.js.map"]
        assert output.other_lines == ["/p/src/a.ts"]
        assert output.diagnostics == []

    def test_position_outside_file_keeps_file(self):
        output = parse_tsc_output(
            "src/a.ts(9,1): error TS1005: ';' expected.\n",
            lambda name: SourceFile(name, "x"),
        )
        [diagnostic] = output.diagnostics
        assert diagnostic.start is None
        assert diagnostic.location() is None


class TestProjectConfig:
    def test_paths_made_absolute(self, project):
        program = engine_for(project).create_program(
            ["src/a.ts"],
            {"outDir": "dist", "rootDirs": ["src", "lib"], "strict": True, "lib": ["es2020"]},
        )
        config = program.project_config()

        assert config["files"] == [str(project / "src" / "a.ts")]
        options = config["compilerOptions"]
        assert options["outDir"] == str(project / "dist")
        assert options["rootDirs"] == [str(project / "src"), str(project / "lib")]
        assert options["strict"] is True
        assert options["lib"] == ["es2020"]
        assert options["pretty"] is False

    def test_default_type_roots(self, project):
        (project / "node_modules" / "@types").mkdir(parents=True)
        config = engine_for(project).create_program(["src/a.ts"], {}).project_config()
        assert str(project / "node_modules" / "@types") in config["compilerOptions"]["typeRoots"]

    def test_explicit_type_roots_kept(self, project):
        config = engine_for(project).create_program(
            ["src/a.ts"], {"typeRoots": [str(project / "types")]}
        ).project_config()
        assert config["compilerOptions"]["typeRoots"] == [str(project / "types")]

    def test_paths_anchored_without_base_url(self, project):
        config = engine_for(project).create_program(
            ["src/a.ts"], {"paths": {"@lib/*": ["src/lib/*"], "@abs": ["/opt/abs.ts"]}}
        ).project_config()
        assert config["compilerOptions"]["paths"] == {
            "@lib/*": [str(project / "src" / "lib" / "*")],
            "@abs": ["/opt/abs.ts"],
        }

    def test_paths_from_resolved_config(self, project):
        (project / "tsconfig.json").write_text(json.dumps({
            "compilerOptions": {"paths": {"@lib/*": ["./src/lib/*"]}},
        }))
        options = get_typescript_config(project)

        config = engine_for(project).create_program(["src/a.ts"], options).project_config()

        assert config["compilerOptions"]["paths"] == {"@lib/*": [str(project / "src" / "lib" / "*")]}

    def test_paths_kept_with_base_url(self, project):
        config = engine_for(project).create_program(
            ["src/a.ts"], {"baseUrl": ".", "paths": {"@lib/*": ["src/lib/*"]}}
        ).project_config()
        assert config["compilerOptions"]["baseUrl"] == str(project)
        assert config["compilerOptions"]["paths"] == {"@lib/*": ["src/lib/*"]}

    def test_options_copied(self, project):
        options = {"strict": True}
        program = engine_for(project).create_program(["src/a.ts"], options)
        program.options["strict"] = False
        assert options == {"strict": True}


class TestEmit:
    def test_successful_emit(self, project, fake_tsc):
        fake = fake_tsc(stdout=f"TSFILE: {project}/dist/a.js\nTSFILE: {project}/dist/a.js.map\n")
        program = engine_for(project).create_program(["src/a.ts"], {"listEmittedFiles": True})

        result = program.emit()

        assert result.emit_skipped is False
        assert result.emitted_files == [f"{project}/dist/a.js", f"{project}/dist/a.js.map"]
        assert fake.commands[0][:2] == ["/usr/bin/tsc", "-p"]
        assert fake.projects[0]["compilerOptions"]["listEmittedFiles"] is True

    def test_emitted_files_only_when_listed(self, project, fake_tsc):
        fake_tsc(stdout=f"TSFILE: {project}/dist/a.js\n")
        result = engine_for(project).create_program(["src/a.ts"], {}).emit()
        assert result.emitted_files is None

    def test_errors_with_outputs_generated(self, project, fake_tsc):
        fake_tsc(
            stdout="src/a.ts(2,7): error TS2322: Type 'number' is not assignable to type 'string'.\n"
                   f"TSFILE: {project}/dist/a.js\n",
            returncode=2,
        )
        program = engine_for(project).create_program(["src/a.ts"], {"listEmittedFiles": True})

        result = program.emit()

        assert result.emit_skipped is False
        assert [d.code for d in program.get_pre_emit_diagnostics()] == [2322]
        assert result.diagnostics == []

    @pytest.mark.parametrize("returncode", [1, 3, 4])
    def test_skipped_exit_codes(self, project, fake_tsc, returncode):
        fake_tsc(stdout="error TS5023: Unknown compiler option 'foo'.\n", returncode=returncode)
        result = engine_for(project).create_program(["src/a.ts"], {}).emit()
        assert result.emit_skipped is True

    def test_no_emit_is_skipped(self, project, fake_tsc):
        fake_tsc()
        result = engine_for(project).create_program(["src/a.ts"], {"noEmit": True}).emit()
        assert result.emit_skipped is True

    def test_emit_diagnostics_split_by_code(self, project, fake_tsc):
        fake_tsc(
            stdout="src/a.ts(2,7): error TS2322: Type 'number' is not assignable to type 'string'.\n"
                   "error TS5033: Could not write file 'dist/a.js': EACCES.\n",
            returncode=2,
        )
        program = engine_for(project).create_program(["src/a.ts"], {})

        emit_codes = [d.code for d in program.emit().diagnostics]
        pre_emit_codes = [d.code for d in program.get_pre_emit_diagnostics()]

        assert emit_codes == [5033]
        assert pre_emit_codes == [2322]

    def test_single_invocation_per_program(self, project, fake_tsc):
        fake = fake_tsc()
        program = engine_for(project).create_program(["src/a.ts"], {})
        program.emit()
        program.get_pre_emit_diagnostics()
        program.emit()
        assert len(fake.commands) == 1

    def test_crash_raises(self, project, fake_tsc):
        fake_tsc(returncode=134, stderr="FATAL ERROR: heap out of memory")
        with pytest.raises(EngineError, match="exit code 134: FATAL ERROR"):
            engine_for(project).create_program(["src/a.ts"], {}).emit()

    def test_unlaunchable_tsc(self, project, monkeypatch):
        def boom(command, **kwargs):
            raise FileNotFoundError(command[0])
        monkeypatch.setattr("tsorchestra.engine.tsc.subprocess.run", boom)
        with pytest.raises(EngineError, match="Failed to run /usr/bin/tsc"):
            engine_for(project).create_program(["src/a.ts"], {}).emit()


class TestSourceFiles:
    def test_list_files_only(self, project, fake_tsc):
        fake = fake_tsc(stdout=f"/lib/lib.es2020.d.ts\n{project}/src/a.ts\n")
        files = engine_for(project).create_program(["src/a.ts"], {}).get_source_files()
        assert [f.file_name for f in files] == ["/lib/lib.es2020.d.ts", f"{project}/src/a.ts"]
        assert fake.commands[0][-1] == "--listFilesOnly"

    def test_diagnostics_do_not_hide_file_list(self, project, fake_tsc):
        fake_tsc(
            stdout="src/a.ts(1,5): error TS1005: ';' expected.\n"
                   "/lib/lib.es2020.d.ts\n"
                   f"{project}/src/a.ts\n",
            returncode=1,
        )
        files = engine_for(project).create_program(["src/a.ts"], {}).get_source_files()
        assert [f.file_name for f in files] == ["/lib/lib.es2020.d.ts", f"{project}/src/a.ts"]

    def test_crash_raises(self, project, fake_tsc):
        fake_tsc(returncode=134, stderr="FATAL ERROR: heap out of memory")
        with pytest.raises(EngineError, match="exit code 134"):
            engine_for(project).create_program(["src/a.ts"], {}).get_source_files()


class TestFindTsc:
    def test_env_var_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TSC_ENV_VAR, "/opt/tsc")
        assert find_tsc(tmp_path) == "/opt/tsc"

    def test_local_install(self, tmp_path, monkeypatch):
        monkeypatch.delenv(TSC_ENV_VAR, raising=False)
        local = tmp_path / "node_modules" / ".bin" / "tsc"
        local.parent.mkdir(parents=True)
        local.write_text("")
        assert find_tsc(tmp_path) == str(local)

    def test_path_lookup(self, tmp_path, monkeypatch):
        monkeypatch.delenv(TSC_ENV_VAR, raising=False)
        monkeypatch.setattr("tsorchestra.engine.tsc.shutil.which", lambda name: "/usr/local/bin/tsc")
        assert find_tsc(tmp_path) == "/usr/local/bin/tsc"

    def test_engine_without_tsc(self, tmp_path, monkeypatch):
        monkeypatch.delenv(TSC_ENV_VAR, raising=False)
        monkeypatch.setattr("tsorchestra.engine.tsc.shutil.which", lambda name: None)
        with pytest.raises(EngineNotFoundError, match=TSC_ENV_VAR):
            TscEngine(cwd=tmp_path)
