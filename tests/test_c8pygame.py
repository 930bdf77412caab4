import pytest

pygame = pytest.importorskip("pygame")

import c8pygame  # noqa: E402
from c8pygame import PIXEL_OFF, PIXEL_ON, handle_key, paint, parse_args, run_frame  # noqa: E402
from chip8 import HaltReason  # noqa: E402
from conftest import words  # noqa: E402


def test_parse_args_defaults():
    args = parse_args(["game.ch8"])
    assert args.rom == "game.ch8"
    assert args.scale == c8pygame.SCALE_FACTOR
    assert args.cycles_per_frame == c8pygame.CYCLES_PER_FRAME
    assert not args.trace
    assert args.debug_file == "debug.txt"


def test_parse_args_overrides():
    args = parse_args(["game.ch8", "--scale", "4", "--cycles-per-frame", "5", "--trace"])
    assert args.scale == 4
    assert args.cycles_per_frame == 5
    assert args.trace


def test_paint_draws_changed_pixels(c8):
    surface = pygame.Surface((64 * 2, 32 * 2))
    c8.screen.xor8px(3, 1, 0x80)
    rects = paint(surface, c8.screen, 2)
    assert rects == [pygame.Rect(6, 2, 2, 2)]
    assert tuple(surface.get_at((7, 3)))[:3] == PIXEL_ON
    assert tuple(surface.get_at((0, 0)))[:3] == PIXEL_OFF
    assert paint(surface, c8.screen, 2) == []


def test_paint_skips_scan_when_screen_is_clean(c8):
    surface = pygame.Surface((64, 32))
    paint(surface, c8.screen, 1)
    assert not c8.screen.needs_draw
    # a changed back buffer would be repainted if paint scanned anyway
    c8.screen.back_buffer[0] = 1
    assert paint(surface, c8.screen, 1) == []


def test_paint_after_long_headless_run(c8):
    # draw glyph 0 over and over without rendering, then paint once
    c8.load_program(words(0xA050, 0xD015, 0x1202))
    for i in range(30002):
        c8.cycle()
    surface = pygame.Surface((64, 32))
    rects = paint(surface, c8.screen, 1)
    # an odd number of draws leaves the 14 pixels of the glyph lit
    assert len(rects) == 14
    assert sum(c8.screen.vram) == 14
    assert not c8.screen.needs_draw
    assert paint(surface, c8.screen, 1) == []


def test_run_frame_after_halt_runs_nothing(c8):
    c8.load_program(words(0x00EE, 0x6005))
    run_frame(c8, 10)
    assert c8.halted
    executed, listing = run_frame(c8, 10)
    assert executed == 0
    assert c8.V[0] == 0


def test_run_frame_runs_cycles_and_ticks(c8):
    c8.load_program(words(0x6003, 0xF015, 0x1204))
    executed, listing = run_frame(c8, 10)
    assert executed == 10
    assert listing is None
    assert c8.delay_register == 2


def test_run_frame_stops_when_waiting_for_key(c8):
    c8.load_program(words(0x6003, 0xF015, 0xF00A, 0x1206))
    executed, listing = run_frame(c8, 10)
    assert executed == 3
    assert c8.blocking_on_key
    assert c8.delay_register == 3


def test_run_frame_returns_listing_when_tracing(c8):
    c8.trace = True
    c8.load_program(words(0x1200))
    executed, listing = run_frame(c8, 2)
    assert executed == 2
    assert listing[0].mnemonic == "JP 200"


def test_escape_halts(c8):
    handle_key(c8, pygame.event.Event(pygame.KEYDOWN, key=pygame.K_ESCAPE))
    assert c8.halted
    assert c8.halt_reason == HaltReason.USER_HALT


def test_key_up_releases(c8):
    c8.set_current_key(4)
    handle_key(c8, pygame.event.Event(pygame.KEYUP, key=pygame.K_q))
    assert c8.current_key is None
