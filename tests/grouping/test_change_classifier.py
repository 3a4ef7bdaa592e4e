import unittest

from lazycommit.grouping.change_classifier import RULES, Classification, classify_change


class TestChangeClassifier(unittest.TestCase):
    def test_classify_change_cases(self) -> None:
        cases = [
            ("README.md", "docs", "docs"),
            ("README.MD", "docs", "docs"),
            ("LICENSE", "docs", "docs"),
            ("docs/guide/intro.txt", "docs", "docs"),
            (".github/workflows/ci.yml", "ci", "ci"),
            (".gitlab-ci.yml", "ci", "ci"),
            ("package.json", "build", "deps"),
            ("requirements-dev.txt", "build", "deps"),
            ("Dockerfile", "build", "config"),
            ("docker-compose.yml", "build", "config"),
            ("vite.config.ts", "build", "config"),
            ("tests/test_parser.py", "test", None),
            ("src/parser.test.ts", "test", None),
            ("pkg/store_test.go", "test", None),
            ("src/auth/login.py", "feat", "auth"),
            ("src/routes/users.ts", "feat", "api"),
            ("db/migrations/001_init.sql", "feat", "db"),
            ("styles/main.css", "feat", "ui"),
            ("src/utils/strings.py", "feat", "utils"),
            ("src/parser/lexer.py", "feat", "parser"),
            ("main.go", "feat", None),
            ("assets/logo.png", "chore", None),
        ]
        for file_path, category, scope in cases:
            with self.subTest(file=file_path):
                self.assertEqual(classify_change(file_path), Classification(category, scope))

    def test_earlier_rules_win(self) -> None:
        # documentation beats the test naming convention
        self.assertEqual(classify_change("docs/test_plan.py").category, "docs")
        # CI beats build configuration
        self.assertEqual(classify_change(".github/dependabot.config.yml").category, "ci")
        # test naming beats domain keywords
        self.assertEqual(classify_change("tests/api/test_routes.py"), Classification("test", None))

    def test_path_normalisation(self) -> None:
        expected = Classification("feat", "core")
        self.assertEqual(classify_change("./src/core/engine.py"), expected)
        self.assertEqual(classify_change("src\\core\\engine.py"), expected)
        self.assertEqual(classify_change(".github/workflows/release.yml").category, "ci")

    def test_every_path_gets_a_category(self) -> None:
        for path in ("", "x", ".hidden", "a/b/c/d/e.unknown"):
            with self.subTest(path=path):
                self.assertIn(classify_change(path).category, {rule.category for rule in RULES})

    def test_deterministic(self) -> None:
        self.assertEqual(classify_change("src/api/users.py"), classify_change("src/api/users.py"))


if __name__ == "__main__":
    unittest.main()
