"""
Tests for field lookups on raw object text
"""

from pnmptrace.core.jsonscan import (
    find_array, find_key, find_value, get_value, iter_elements, next_element
)


class TestGetValue:
    """Test scalar extraction"""

    def test_order_independent(self):
        """Key order doesn't change the value found"""
        assert get_value('{"a":"1","b":"2"}', "a") == "1"
        assert get_value('{"b":"2","a":"1"}', "a") == "1"

    def test_case_insensitive(self):
        """Key names match regardless of case"""
        blob = '"@type":"L2Trace","l2Type":"SABM"'
        assert get_value(blob, "L2Type") == "SABM"
        assert get_value(blob, "l2type") == get_value(blob, "L2Type")

    def test_case_folding_is_ascii_only(self):
        """Non-ASCII letters never fold onto ASCII key names"""
        assert get_value('"\u017frce":"X","srce":"G8PZT"', "srce") == "G8PZT"
        assert get_value('"\u212aey":"X","key":"Y"', "key") == "Y"

    def test_truncation(self):
        """Long values are cut to the requested length"""
        assert get_value('"call":"ABCDEFGHIJ"', "call", 3) == "ABC"

    def test_missing_key(self):
        assert get_value('"a":"1"', "b") is None

    def test_missing_colon(self):
        """A quoted name with no colon after it is not a key"""
        assert get_value('"a" "1"', "a") is None

    def test_bare_values(self):
        """Numbers and booleans stop at the first non-value character"""
        blob = '"port": 2, "isRF":true,"lat":-51.5}'
        assert get_value(blob, "port") == "2"
        assert get_value(blob, "isRF") == "true"
        assert get_value(blob, "lat") == "-51.5"

    def test_no_escape_processing(self):
        """A quoted value ends at the next quote even if escaped"""
        assert get_value(r'"info":"say \"hi\""', "info") == "say \\"

    def test_unterminated_string(self):
        assert get_value('"info":"abc', "info") == "abc"

    def test_empty_value(self):
        assert get_value('"dirn":"","x":1', "dirn") == ""

    def test_key_inside_value_matches(self):
        """The scanner is not key-position aware, the first match wins"""
        blob = '"type":"NODES","fromAlias":"BBS1","nodes":[]'
        assert blob[find_key(blob, "nodes")] == '"'
        assert get_value(blob, "nodes") == "BBS1"
        assert find_array(blob, "nodes") is None

        _, after_alias = find_value(blob, "fromAlias")
        assert blob[find_array(blob, "nodes", after_alias)] == "["

    def test_whitespace_after_colon(self):
        assert get_value('"a" :   "x"', "a") == "x"

    def test_start_offset(self):
        blob = '"a":"1","b":"2","a":"3"'
        value, end = find_value(blob, "a")
        assert value == "1"
        assert get_value(blob, "a", start=end) == "3"


class TestFindArray:
    """Test array location"""

    def test_found(self):
        blob = '"fromAlias":"BBS1","nodes": [{"call":"G1"}]'
        pos = find_array(blob, "nodes")
        assert blob[pos] == "["

    def test_not_an_array(self):
        assert find_array('"nodes":"none"', "nodes") is None

    def test_missing(self):
        assert find_array('"a":1', "nodes") is None


class TestArrayIteration:
    """Test walking flat arrays of objects"""

    BLOB = '"nodes":[{"call":"G1"},{"call":"G2"}, {"call":"G3"}],"x":1'

    def test_next_element_skips_current(self):
        """The element at the cursor is skipped, the following one returned"""
        first = self.BLOB.index("{")
        element, cursor = next_element(self.BLOB, first)
        assert element == '{"call":"G2"}'
        assert self.BLOB[cursor] == "{"

    def test_next_element_end_of_array(self):
        last = self.BLOB.rindex("{")
        assert next_element(self.BLOB, last) is None

    def test_next_element_truncates(self):
        first = self.BLOB.index("{")
        element, _ = next_element(self.BLOB, first, max_len=5)
        assert element == '{"cal'

    def test_iter_elements_yields_all(self):
        pos = find_array(self.BLOB, "nodes")
        calls = [get_value(e, "call") for e in iter_elements(self.BLOB, pos)]
        assert calls == ["G1", "G2", "G3"]

    def test_iter_elements_empty_array(self):
        blob = '"nodes":[],"other":{"call":"X"}'
        assert list(iter_elements(blob, find_array(blob, "nodes"))) == []
