"""Console statement detection and removal."""
from conftest import source_of

from unexport.analyzer.console_scanner import ConsoleScanner
from unexport.reaper.console_remover import ConsoleRemover
from unexport.report import ConsoleEntry


def _scan(load_project, code, prefix='console.'):
    project = load_project({'src/a.ts': code})
    file = project.files[0]
    return project, file, ConsoleScanner(project, prefix=prefix).scan(file)


def test_statements_are_found_in_source_order(load_project):
    _, _, matches = _scan(load_project, """
        console.log('start');
        function work() {
            console.warn("careful", 1);
            return 2;
        }
        const x = console;
        console.error.bind(null)('x');
    """)
    assert [entry for _, entry in matches] == [
        ConsoleEntry('./src/a.ts', 1, 'console.log'),
        ConsoleEntry('./src/a.ts', 3, 'console.warn'),
        ConsoleEntry('./src/a.ts', 7, 'console.error.bind'),
    ]


def test_expressions_inside_other_statements_are_ignored(load_project):
    _, _, matches = _scan(load_project, """
        const logged = console.log('value');
        if (console.log) { run(); }
    """)
    assert matches == []


def test_removal_deletes_whole_lines(load_project):
    project, file, matches = _scan(load_project, """
        function work() {
            console.log('a');
            return 1;
        }
        console.debug('b'); const keep = 1;
    """)
    removed = ConsoleRemover().remove(file, [node for node, _ in matches])
    assert removed == 2
    assert source_of(project, 'src/a.ts') == "function work() {\n    return 1;\n}\n const keep = 1;\n"


def test_nested_matches_are_removed_once(load_project):
    project, file, matches = _scan(load_project, """
        console.group(() => {
            console.log('inner');
        });
        done();
    """)
    assert len(matches) == 2
    assert ConsoleRemover().remove(file, [node for node, _ in matches]) == 1
    assert source_of(project, 'src/a.ts') == "done();\n"


def test_custom_callee(load_project):
    _, _, matches = _scan(load_project, """
        logger.info('x');
        console.log('y');
    """, prefix='logger.')
    assert [entry.statement for _, entry in matches] == ['logger.info']


def test_nothing_to_remove(load_project):
    _, file, _ = _scan(load_project, "run();\n")
    assert ConsoleRemover().remove(file, []) == 0
    assert not file.is_dirty
