import argparse
import datetime
import logging

import pygame

from c8decode import format_listing
from chip8 import C8Computer, HaltReason, translate_key

logger = logging.getLogger(__name__)

SCALE_FACTOR = 8
PIXEL_OFF = (0, 0, 0)
PIXEL_ON = (0, 160, 0)
FRAME_RATE = 60
# Tweak this per ROM - how many instructions run per 1/60 s frame.  Larger means faster games.
CYCLES_PER_FRAME = 20


def paint(surface, screen, scale=SCALE_FACTOR):
    '''
    Draws only the pixels that changed since the last paint, one scaled square
    each, and returns the rectangles that need to be pushed to the display.
    '''
    rects = []
    if not screen.needs_draw:
        return rects
    for x, y, value in screen.changed_pixels():
        rect = pygame.Rect(x * scale, y * scale, scale, scale)
        surface.fill(PIXEL_ON if value else PIXEL_OFF, rect)
        rects.append(rect)
    return rects


def run_frame(c8, cycles):
    '''
    One 1/60 s frame: up to `cycles` instructions, then one timer tick.  Stops early
    on halt or when an Fx0A starts waiting.  Returns (instructions run, last listing).
    '''
    executed = 0
    listing = None
    for i in range(cycles):
        if c8.halted or c8.blocking_on_key:
            break
        result = c8.cycle()
        if result is not None:
            listing = result
        executed += 1
    c8.tick_timers()
    return executed, listing


def handle_key(c8, event):
    if event.type == pygame.KEYDOWN:
        if event.key == pygame.K_ESCAPE:
            c8.halt(HaltReason.USER_HALT, "user halted execution")
            return
        code = translate_key(pygame.key.name(event.key))
        if code is not None:
            c8.press_key(code)
    elif event.type == pygame.KEYUP:
        c8.release_key()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument("rom", help="program file, loaded at 0x200")
    parser.add_argument("--scale", type=int, default=SCALE_FACTOR, metavar="N",
                        help="window pixels per CHIP-8 pixel (default: %(default)s)")
    parser.add_argument("--cycles-per-frame", type=int, default=CYCLES_PER_FRAME, metavar="N",
                        help="instructions executed per 1/60 s frame (default: %(default)s)")
    parser.add_argument("--trace", action="store_true",
                        help="disassemble the program every cycle and log it at DEBUG level")
    parser.add_argument("--debug-file", default="debug.txt",
                        help="machine state is written here on exit (default: %(default)s)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def write_debug_dump(c8, filename):
    with open(filename, "w") as outfile:
        c8.debug_dump(outfile)
    logger.info("Machine state written to %s", filename)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    c8 = C8Computer(trace=args.trace)
    c8.load_rom(args.rom)

    pygame.init()
    window = pygame.display.set_mode((c8.screen.xsize * args.scale, c8.screen.ysize * args.scale))
    pygame.display.set_caption("CHIP-8")
    window.fill(PIXEL_OFF)
    pygame.display.flip()

    timer_event = pygame.USEREVENT + 1
    pygame.time.set_timer(timer_event, 1000 // FRAME_RATE)  # 16ms ~= 60Hz

    run = True
    halt_reported = False
    num_instr = 0
    num_frames = 0
    start_time = datetime.datetime.now()

    try:
        while run:
            event = pygame.event.wait()
            if event.type == pygame.QUIT:
                run = False
            elif event.type in (pygame.KEYDOWN, pygame.KEYUP):
                handle_key(c8, event)
            elif event.type == timer_event:
                executed, listing = run_frame(c8, args.cycles_per_frame)
                num_instr += executed
                num_frames += 1
                if listing is not None:
                    logger.debug("Program listing:\n%s", format_listing(listing))
                pygame.display.update(paint(window, c8.screen, args.scale))

            # The window stays up after a halt so the last frame can be inspected
            if c8.halted and not halt_reported:
                logger.warning("Machine halted: %s", c8.halted_msg)
                halt_reported = True
    except Exception:
        write_debug_dump(c8, args.debug_file)
        raise

    write_debug_dump(c8, args.debug_file)
    duration = (datetime.datetime.now() - start_time).total_seconds()
    logger.info("Duration: %.1f sec., %d frames", duration, num_frames)
    if duration > 0:
        logger.info("Performance: %.0f instructions per second", num_instr / duration)
    pygame.quit()


if __name__ == "__main__":
    main()
