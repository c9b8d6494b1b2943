"""Unit tests for OutputCollector and its sinks."""

from sparkc.output_collector import NullSink, OutputCollector, OutputSink, StringSink


class TestOutputCollector:
    def test_no_output_until_primary_opened(self):
        collector = OutputCollector()
        assert collector.output is None

    def test_primary_sink_accumulates_writes(self):
        collector = OutputCollector()
        sink = collector.open_output("", "js")
        sink.add("a")
        sink.add("b")
        sink.close()

        assert isinstance(sink, StringSink)
        assert collector.output == "ab"

    def test_opening_primary_without_writes_yields_empty_output(self):
        collector = OutputCollector()
        collector.open_output("", "js").close()
        assert collector.output == ""

    def test_repeated_opens_append_in_call_order(self):
        collector = OutputCollector()
        first = collector.open_output("", "js")
        first.add("part one;")
        first.close()
        second = collector.open_output("", "js")
        second.add("part two;")
        second.close()

        assert collector.output == "part one;part two;"

    def test_non_primary_sinks_never_affect_output(self):
        collector = OutputCollector()
        primary = collector.open_output("", "js")
        primary.add("main")

        for name, extension in [("", "js.map"), ("deferred", "js"), ("main", "js"), ("", "css")]:
            sink = collector.open_output(name, extension)
            assert isinstance(sink, NullSink)
            sink.add("ignored")
            sink.add_error(RuntimeError("ignored"))
            sink.close()

        assert collector.output == "main"
        assert collector.discarded == [".js.map", "deferred.js", "main.js", ".css"]

    def test_non_primary_only_leaves_output_absent(self):
        collector = OutputCollector()
        collector.open_output("", "js.map").add("{}")
        assert collector.output is None

    def test_custom_primary_extension(self):
        collector = OutputCollector(primary_extension="mjs")
        assert isinstance(collector.open_output("", "js"), NullSink)
        collector.open_output("", "mjs").add("export {};")
        assert collector.output == "export {};"

    def test_sinks_satisfy_protocol(self):
        collector = OutputCollector()
        assert isinstance(collector.open_output("", "js"), OutputSink)
        assert isinstance(collector.open_output("x", "y"), OutputSink)


class TestNullSink:
    def test_repr_names_artifact(self):
        assert repr(NullSink("main.js.map")) == "NullSink('main.js.map')"

    def test_close_is_repeatable(self):
        sink = NullSink("x.y")
        sink.close()
        sink.close()
