"""CLI behaviour: exit codes, messages and fix mode."""
import pytest
from typer.testing import CliRunner

from unexport.config import __version__
from unexport.main import app

runner = CliRunner()


@pytest.fixture
def project_dir(ts_project, monkeypatch):
    """A small project as the working directory, with no env defaults."""
    monkeypatch.delenv("UNEXPORT_GLOB", raising=False)
    monkeypatch.delenv("UNEXPORT_TSCONFIG", raising=False)
    monkeypatch.delenv("UNEXPORT_CALLEE", raising=False)

    def _make(files):
        root = ts_project(files)
        monkeypatch.chdir(root)
        return root
    return _make


USED_AND_UNUSED = {
    'src/a.ts': """
        export function f() {}
        export function g() {}
    """,
    'src/b.ts': """
        import { f } from './a';
        f();
    """,
}


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestExportsCommand:
    def test_reports_unused_exports(self, project_dir):
        root = project_dir(USED_AND_UNUSED)
        result = runner.invoke(app, ["exports", "--glob", "./src/**/*.(ts|tsx)"])
        assert result.exit_code == 0
        assert "./src/a.ts" in result.output
        assert "Pass the --fix flag" in result.output
        assert (root / 'src/a.ts').read_text().count('export') == 2

    def test_fix_rewrites_files(self, project_dir):
        root = project_dir(USED_AND_UNUSED)
        result = runner.invoke(app, ["exports", "-g", "src/**/*.ts", "--fix"])
        assert result.exit_code == 0
        assert "You have no unused exports now!" in result.output
        assert (root / 'src/a.ts').read_text() == "export function f() {}\nfunction g() {}\n"

        again = runner.invoke(app, ["exports", "-g", "src/**/*.ts"])
        assert again.exit_code == 0
        assert "No unused exports found" in again.output

    def test_fix_with_only_unstrippable_exports(self, project_dir):
        root = project_dir({
            'src/a.ts': "export const { a, b } = { a: 1, b: 2 };\n",
            'src/b.ts': """
                import { b } from './a';
                console.log(b);
            """,
        })
        result = runner.invoke(app, ["exports", "-g", "src/**/*.ts", "--fix"])
        assert result.exit_code == 0
        assert "could not be removed" in result.output
        assert "No unused exports found" not in result.output
        assert "You have no unused exports now!" not in result.output
        assert (root / 'src/a.ts').read_text() == "export const { a, b } = { a: 1, b: 2 };\n"

    def test_fix_with_some_unstrippable_exports(self, project_dir):
        project_dir({
            'src/a.ts': """
                export const { a, b } = { a: 1, b: 2 };
                export function g() {}
            """,
            'src/b.ts': """
                import { b } from './a';
                console.log(b);
            """,
        })
        result = runner.invoke(app, ["exports", "-g", "src/**/*.ts", "--fix"])
        assert result.exit_code == 0
        assert "have been removed" in result.output
        assert "could not be removed" in result.output
        assert "You have no unused exports now!" not in result.output

    def test_missing_glob(self, project_dir):
        project_dir(USED_AND_UNUSED)
        result = runner.invoke(app, ["exports"])
        assert result.exit_code == 1
        assert "Please provide a file glob" in result.output

    def test_glob_from_environment(self, project_dir, monkeypatch):
        project_dir(USED_AND_UNUSED)
        monkeypatch.setenv("UNEXPORT_GLOB", "src/**/*.ts")
        result = runner.invoke(app, ["exports"])
        assert result.exit_code == 0
        assert "./src/a.ts" in result.output

    def test_glob_without_matches(self, project_dir):
        project_dir(USED_AND_UNUSED)
        result = runner.invoke(app, ["exports", "--glob", "lib/**/*.ts"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_tsconfig(self, project_dir):
        root = project_dir(USED_AND_UNUSED)
        (root / 'tsconfig.json').unlink()
        result = runner.invoke(app, ["exports", "--glob", "src/**/*.ts"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_explicit_project_file(self, project_dir):
        root = project_dir(USED_AND_UNUSED)
        (root / 'tsconfig.json').rename(root / 'tsconfig.build.json')
        result = runner.invoke(app, ["exports", "-g", "src/**/*.ts", "--project", "tsconfig.build.json"])
        assert result.exit_code == 0


class TestConsolesCommand:
    def test_reports_console_statements(self, project_dir):
        root = project_dir({'src/a.ts': "console.log('x');\nrun();\n"})
        result = runner.invoke(app, ["consoles", "--glob", "src/**/*.ts"])
        assert result.exit_code == 0
        assert "Found 1 console statements" in result.output
        assert (root / 'src/a.ts').read_text() == "console.log('x');\nrun();\n"

    def test_fix_removes_statements(self, project_dir):
        root = project_dir({'src/a.ts': "console.log('x');\nrun();\n"})
        result = runner.invoke(app, ["consoles", "--glob", "src/**/*.ts", "--fix"])
        assert result.exit_code == 0
        assert "Removed 1 console statements" in result.output
        assert (root / 'src/a.ts').read_text() == "run();\n"

    def test_clean_project(self, project_dir):
        project_dir({'src/a.ts': "run();\n"})
        result = runner.invoke(app, ["consoles", "--glob", "src/**/*.ts"])
        assert result.exit_code == 0
        assert "Congratulations!" in result.output

    def test_custom_callee(self, project_dir):
        project_dir({'src/a.ts': "debug.trace('x');\nconsole.log('y');\n"})
        result = runner.invoke(app, ["consoles", "--glob", "src/**/*.ts", "--callee", "debug"])
        assert result.exit_code == 0
        assert "Found 1 debug statements" in result.output
