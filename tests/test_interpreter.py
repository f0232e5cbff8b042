from __future__ import annotations

from livecontext.schemas.directives import EditImage, GenerateImages
from livecontext.stream.interpreter import CommandInterpreter


def feed_all(fragments, **kw):
    it = CommandInterpreter(**kw)
    results = [it.feed(f) for f in fragments]
    return it, results


def test_generate_directive_split_across_fragments():
    it, results = feed_all(["Olá! [generate_", "images(2): 'two cats", " playing']"])
    fired = [r.directive for r in results if r.directive is not None]
    assert fired == [GenerateImages(count=2, prompt="two cats playing")]
    assert results[-1].text == "Olá!"
    assert it.dispatched


def test_directive_fires_on_the_completing_fragment_only():
    _, results = feed_all(["Sure [edit_image: 'add", " a hat']", " done"])
    assert results[0].directive is None
    assert results[1].directive == EditImage(prompt="add a hat")
    assert results[2].directive is None


def test_malformed_count_never_fires():
    _, results = feed_all(["[generate_images(x): 'cats']"])
    assert results[0].directive is None
    assert results[0].text == "[generate_images(x): 'cats']"


def test_zero_count_and_empty_prompt_never_fire():
    _, results = feed_all(["[generate_images(0): 'cats'] [edit_image: '']"])
    assert results[0].directive is None


def test_truncated_directive_stays_visible():
    _, results = feed_all(["Here: [generate_images(2): 'dogs"])
    assert results[-1].directive is None
    assert results[-1].text == "Here: [generate_images(2): 'dogs"


def test_whitespace_after_colon_is_optional():
    _, results = feed_all(["[generate_images(3):'robots']"])
    assert results[0].directive == GenerateImages(count=3, prompt="robots")


def test_first_directive_wins_and_later_ones_stay_literal():
    _, results = feed_all(["A [edit_image: 'first'] B [generate_images(1): 'second']"])
    assert results[0].directive == EditImage(prompt="first")
    assert results[0].text == "A  B [generate_images(1): 'second']"


def test_single_dispatch_per_turn():
    _, results = feed_all(["[generate_images(1): 'a']", " and [generate_images(1): 'b']"])
    assert [r.directive for r in results if r.directive] == [GenerateImages(count=1, prompt="a")]
    assert results[-1].text == " and [generate_images(1): 'b']"


def test_text_after_dispatch_appends_unchanged():
    _, results = feed_all(["Hi [edit_image: 'x']", "  more  "])
    assert results[0].text == "Hi"
    assert results[1].text == "Hi  more  "


def test_case_sensitive_grammar():
    _, results = feed_all(["[Generate_Images(1): 'a']"])
    assert results[0].directive is None


def test_lookback_window_bounds_rescans():
    head = "[generate_images(1): '" + "x" * 40
    it, results = feed_all([head, "']"], max_directive_chars=10)
    assert results[-1].directive is None
    it2, results2 = feed_all([head, "']"], max_directive_chars=1000)
    assert results2[-1].directive == GenerateImages(count=1, prompt="x" * 40)


def test_empty_fragment_is_a_no_op():
    it = CommandInterpreter()
    assert it.feed("").text == ""
    assert it.feed("abc").text == "abc"
    assert it.feed("").directive is None
