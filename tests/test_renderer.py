from io import BytesIO

import pytest
from PIL import Image

import app
from app import (
    CondolenceCardRenderer,
    RenderError,
    cover_fit_size,
    info_lines,
    message_baselines,
    render_png,
    wrap_text,
)
from config import CARD_WIDTH, DEFAULT_MESSAGE, MESSAGE_FONT_SIZE, MESSAGE_MARGIN_PX, PHOTO_COVER_FACTOR, PHOTO_RADIUS
from models import FormInput


def _photo_bytes(size=(300, 300), color=None, mode="RGB", fmt="PNG") -> bytes:
    if color is None:
        img = Image.linear_gradient("L").resize(size).convert(mode)
    else:
        img = Image.new(mode, size, color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def _ahmad() -> FormInput:
    return FormInput.from_form(
        "Ahmad bin Ali",
        date_of_birth="1950-01-01",
        date_of_death="2024-03-15",
        age="74",
        place_of_death="Kuala Lumpur",
        custom_message=DEFAULT_MESSAGE,
    )


def test_end_to_end_png_is_600x800():
    png = render_png(_photo_bytes(), _ahmad())
    assert png.startswith(b"\x89PNG")
    assert len(png) >= 1000
    assert Image.open(BytesIO(png)).size == (600, 800)


@pytest.mark.parametrize("size", [(300, 300), (1600, 900), (400, 1200), (37, 512)])
def test_any_aspect_ratio_renders_fixed_size(size):
    card = CondolenceCardRenderer().render_card(_photo_bytes(size), FormInput(full_name="Siti"))
    assert card.size == (600, 800)


def test_photo_fills_circle_and_background_stays_black():
    card = CondolenceCardRenderer().render_card(_photo_bytes((500, 200), color=(200, 0, 0)), FormInput(full_name="Siti"))
    assert card.getpixel((300, 300)) == (200, 0, 0)
    # Just inside the clip on each side
    for xy in ((300, 190), (300, 410), (190, 300), (410, 300)):
        assert card.getpixel(xy) == (200, 0, 0)
    assert card.getpixel((5, 5)) == (0, 0, 0)
    assert card.getpixel((170, 170)) == (0, 0, 0)


def test_transparent_photo_renders():
    card = CondolenceCardRenderer().render_card(
        _photo_bytes(color=(0, 255, 0, 0), mode="RGBA"), FormInput(full_name="Siti")
    )
    assert card.size == (600, 800)
    assert card.getpixel((300, 300)) == (0, 0, 0)


def test_sixteen_bit_grayscale_photo_keeps_its_tone():
    card = CondolenceCardRenderer().render_card(_photo_bytes(color=30000, mode="I;16"), FormInput(full_name="Siti"))
    r, g, b = card.getpixel((300, 300))
    assert r == g == b
    # 30000 / 65535 of full scale
    assert 110 <= r <= 124


def test_thin_strip_photo_only_resamples_the_circle(monkeypatch):
    sizes = []
    original_resize = Image.Image.resize

    def _spy(self, size, *args, **kwargs):
        sizes.append(tuple(size))
        return original_resize(self, size, *args, **kwargs)

    monkeypatch.setattr(Image.Image, "resize", _spy)
    card = CondolenceCardRenderer().render_card(_photo_bytes((1, 3000), color=(0, 0, 200)), FormInput(full_name="Siti"))

    assert card.getpixel((300, 300)) == (0, 0, 200)
    assert card.getpixel((300, 190)) == (0, 0, 200)
    assert sizes
    assert all(w * h <= (2 * PHOTO_RADIUS + 1) ** 2 for w, h in sizes)


def test_render_is_deterministic():
    renderer = CondolenceCardRenderer()
    photo = _photo_bytes((640, 480))
    first = Image.open(BytesIO(renderer.render_png(photo, _ahmad())))
    second = Image.open(BytesIO(renderer.render_png(photo, _ahmad())))
    assert first.tobytes() == second.tobytes()


@pytest.mark.parametrize("size", [(1, 1), (4000, 3000), (300, 1200), (1, 1000), (1000, 1)])
def test_cover_fit_always_covers_circle(size):
    target = PHOTO_RADIUS * PHOTO_COVER_FACTOR
    w, h = cover_fit_size(*size)
    assert w >= target - 1e-9
    assert h >= target - 1e-9
    assert w / h == pytest.approx(size[0] / size[1])


def test_cover_fit_rejects_empty_size():
    with pytest.raises(RenderError) as exc:
        cover_fit_size(0, 100)
    assert exc.value.reason == "decode-failure"


def _measure(s: str) -> float:
    return len(s) * 10


def test_wrap_text_greedy():
    assert wrap_text("aaaa bbbb cccc", 100, _measure) == ["aaaa bbbb", "cccc"]


def test_wrap_text_long_word_gets_own_line():
    assert wrap_text("hi supercalifragilistic ok", 100, _measure) == ["hi", "supercalifragilistic", "ok"]
    assert wrap_text("supercalifragilistic", 100, _measure) == ["supercalifragilistic"]


def test_wrap_text_empty_message():
    assert wrap_text("", 100, _measure) == []
    assert wrap_text("   ", 100, _measure) == []


def test_wrap_text_measures_candidate_with_trailing_space():
    # "aaaa bbbb" is 90 wide, "aaaa bbbb " is 100
    assert wrap_text("aaaa bbbb", 95, _measure) == ["aaaa", "bbbb"]
    assert wrap_text("aaaa bbbb", 100, _measure) == ["aaaa bbbb"]


def test_message_lines_and_closing_are_drawn_on_their_baselines():
    from PIL import ImageDraw

    renderer = CondolenceCardRenderer()
    card = renderer.render_card(_photo_bytes(), FormInput(full_name="Siti", custom_message=DEFAULT_MESSAGE))

    font = renderer.get_font("regular", MESSAGE_FONT_SIZE)
    draw = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    lines = wrap_text(DEFAULT_MESSAGE, CARD_WIDTH - MESSAGE_MARGIN_PX, lambda s: draw.textlength(s, font=font))
    ys, closing_y = message_baselines(len(lines))
    assert len(lines) >= 2

    def ink(top, bottom):
        return card.crop((0, top, CARD_WIDTH, bottom)).getbbox() is not None

    for y in ys:
        assert ink(y - 4, y)
    assert ink(closing_y - 4, closing_y)
    # Between the last message line and the closing phrase, and below it
    assert not ink(ys[-1] + 10, closing_y - 40)
    assert not ink(closing_y + 12, 800)
    # Between the rule and the first message line
    assert not ink(566, ys[0] - 20)


def test_wrap_text_with_real_glyph_metrics_is_deterministic():
    from PIL import ImageDraw

    renderer = CondolenceCardRenderer()
    font = renderer.get_font("regular", 20)
    draw = ImageDraw.Draw(Image.new("RGB", (10, 10)))

    def measure(s):
        return draw.textlength(s, font=font)

    first = wrap_text(DEFAULT_MESSAGE * 2, 540, measure)
    second = wrap_text(DEFAULT_MESSAGE * 2, 540, measure)
    assert first == second
    assert len(first) > 1
    assert all(measure(line) <= 540 for line in first)
    assert " ".join(first) == " ".join((DEFAULT_MESSAGE * 2).split())


def test_info_lines_full_form():
    lines = info_lines(_ahmad())
    assert [(text, y) for text, _role, _size, y in lines] == [
        ("AHMAD BIN ALI", 460),
        ("1/1/1950 - 3/15/2024", 490),
        ("Age 74 years • Kuala Lumpur", 515),
    ]


def test_info_lines_missing_optionals_keep_positions():
    only_name = info_lines(FormInput(full_name="Siti"))
    assert [(t, y) for t, _r, _s, y in only_name] == [("SITI", 460)]

    place_only = info_lines(FormInput(full_name="Siti", place_of_death="Ipoh"))
    assert [(t, y) for t, _r, _s, y in place_only] == [("SITI", 460), ("Ipoh", 515)]

    age_only = info_lines(FormInput.from_form("Siti", age="0", date_of_birth="1950-01-01"))
    assert [(t, y) for t, _r, _s, y in age_only] == [("SITI", 460), ("Age 0 years", 515)]


def test_message_baselines():
    assert message_baselines(0) == ([], 680)
    assert message_baselines(3) == ([600, 630, 660], 740)


def test_missing_name_is_missing_input():
    with pytest.raises(RenderError) as exc:
        render_png(_photo_bytes(), FormInput(full_name="   "))
    assert exc.value.reason == "missing-input"


def test_missing_photo_is_missing_input():
    with pytest.raises(RenderError) as exc:
        render_png(b"", FormInput(full_name="Siti"))
    assert exc.value.reason == "missing-input"


def test_undecodable_photo_is_decode_failure():
    with pytest.raises(RenderError) as exc:
        render_png(b"definitely not an image", FormInput(full_name="Siti"))
    assert exc.value.reason == "decode-failure"


def test_drawing_exception_is_draw_failure(monkeypatch):
    renderer = CondolenceCardRenderer()

    def _boom(role, size):
        raise RuntimeError("font backend exploded")

    monkeypatch.setattr(renderer, "get_font", _boom)
    with pytest.raises(RenderError) as exc:
        renderer.render_card(_photo_bytes(), FormInput(full_name="Siti"))
    assert exc.value.reason == "draw-failure"


def test_tiny_png_is_rejected(monkeypatch):
    monkeypatch.setattr(app, "MIN_PNG_BYTES", 10**9)
    with pytest.raises(RenderError) as exc:
        CondolenceCardRenderer().render_png(_photo_bytes(), FormInput(full_name="Siti"))
    assert exc.value.reason == "draw-failure"


def test_render_error_rejects_unknown_reason():
    with pytest.raises(ValueError):
        RenderError("kaboom")


def test_create_pdf_bytes():
    renderer = CondolenceCardRenderer()
    card = renderer.render_card(_photo_bytes(), _ahmad())
    assert renderer.create_pdf_bytes(card).startswith(b"%PDF")


def test_cli_writes_card_and_saves_locally(tmp_path, monkeypatch):
    photo = tmp_path / "photo.jpg"
    photo.write_bytes(_photo_bytes(fmt="JPEG"))
    store_dir = tmp_path / "store"
    monkeypatch.setenv("CONDOLENCE_STORE", "local")
    monkeypatch.setenv("CONDOLENCE_LOCAL_DIR", str(store_dir))

    app.main([str(photo), "Ahmad bin Ali", "--place", "Kuala Lumpur", "-o", str(tmp_path / "out"), "--pdf", "--save"])

    assert (tmp_path / "out" / "condolence-Ahmad_bin_Ali.png").exists()
    assert (tmp_path / "out" / "condolence-Ahmad_bin_Ali.pdf").exists()
    assert (store_dir / "records.json").exists()
    assert len(list((store_dir / "original").glob("*_Ahmad_bin_Ali.jpg"))) == 1


def test_cli_exits_on_missing_photo(tmp_path):
    with pytest.raises(SystemExit) as exc:
        app.main([str(tmp_path / "nope.jpg"), "Siti"])
    assert exc.value.code == 1
