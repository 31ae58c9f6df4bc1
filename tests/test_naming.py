from spotivy.core.naming import sanitize


class TestSanitize:

    def test_removes_separators_and_punctuation(self):
        result = sanitize("AC/DC: Back In Black?")
        assert result == "AC-DC Back In Black"
        assert not any(c in result for c in "/:?")

    def test_dashes_reserved_characters(self):
        assert sanitize("a\\b*c<d>e") == "a-b-c-d-e"

    def test_double_quotes_become_single(self):
        assert sanitize('Say "Hello"') == "Say 'Hello'"

    def test_unicode_untouched(self):
        assert sanitize("Sigur Rós - Hoppípolla") == "Sigur Rós - Hoppípolla"
        assert sanitize("宇多田ヒカル") == "宇多田ヒカル"

    def test_distinct_names_may_collide(self):
        assert sanitize("A/B") == sanitize("A*B")

    def test_deterministic(self):
        assert sanitize("What?") == sanitize("What?") == "What"
