"""
Command-line front end.

Usage:
    sdf-halftone generate hilbert -o hilbert.png --width 1024 --height 1024 --iterations 5
    sdf-halftone generate noise -o noise.png --scale 2 --octaves 6 --seed 7
    sdf-halftone apply photo.jpg hilbert.png -o screened.png --method threshold
    sdf-halftone analyze hilbert.png --radius-in 0.125 --dpi 300 --overlay check.png --plot map.png

Ctrl-C cancels the running operation.
"""

import argparse
import sys
from concurrent.futures import Future
from pathlib import Path

from .analysis import (composite_overlay, format_stats, plot_darkness_map, radius_from_inches,
                       render_overlay)
from .benday import GRID_TYPES, SHAPE_FACTORS
from .buffer import load_buffer, save_buffer
from .errors import HalftoneError, OperationCancelled
from .halftone import METHODS
from .noise import DISTRIBUTIONS
from .patterns import PatternKind, params_from_dict
from .slots import PatternStudio

DEFAULT_RADIUS_INCHES = 0.125
DEFAULT_DPI = 300


def progress_printer(label: str, verbose: bool):
    """Print a progress line every 10%."""
    state = {'next': 0.1}

    def report(value: float):
        if not verbose:
            return
        while value >= state['next'] - 1e-9 and state['next'] <= 1.0 + 1e-9:
            print(f"  {label}: {round(state['next'] * 100)}%")
            state['next'] += 0.1
    return report


def wait(future: Future, slot):
    """Block on a slot's unit; Ctrl-C flips its cancel token and keeps waiting."""
    while True:
        try:
            return future.result()
        except KeyboardInterrupt:
            print("\nCancelling...")
            slot.cancel()


def pattern_settings(args) -> dict:
    kind = PatternKind.parse(args.kind)
    if kind.is_curve:
        return {'iterations': args.iterations, 'line_width': args.line_width}
    if kind == PatternKind.RANDOM:
        return {'distribution': args.distribution, 'seed': args.seed}
    if kind == PatternKind.NOISE:
        return {'scale': args.scale, 'octaves': args.octaves,
                'persistence': args.persistence, 'seed': args.seed}
    return {'spacing': args.spacing, 'shape': args.shape, 'grid_type': args.grid,
            'dot_size': args.dot_size}


def cmd_generate(args, studio: PatternStudio):
    params = params_from_dict(args.kind, pattern_settings(args))
    verbose = not args.quiet
    if verbose:
        print(f"Generating {args.kind} pattern {args.width}x{args.height}...")
        print(f"  Parameters: {params}")
        print(f"  Output: {args.output}")
    future = studio.generate(args.kind, args.width, args.height, params,
                             progress=progress_printer('generate', verbose), invert=args.invert)
    buffer = wait(future, studio.generation)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    save_buffer(buffer, args.output, grayscale=True)


def cmd_apply(args, studio: PatternStudio):
    verbose = not args.quiet
    source = load_buffer(args.image)
    pattern = load_buffer(args.pattern) if args.pattern else None
    if verbose:
        print(f"Applying {args.method} halftone...")
        print(f"  Image: {args.image} ({source.width}x{source.height})")
        if pattern is not None:
            print(f"  Pattern: {args.pattern} ({pattern.width}x{pattern.height})")
        print(f"  Output: {args.output}")
    future = studio.apply(source, pattern, args.method, args.contrast, args.brightness,
                          progress=progress_printer('halftone', verbose))
    result = wait(future, studio.halftone)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    save_buffer(result, args.output, grayscale=True)


def cmd_analyze(args, studio: PatternStudio):
    verbose = not args.quiet
    pattern = load_buffer(args.pattern)
    if args.radius_px is not None:
        radius = args.radius_px
    else:
        radius = radius_from_inches(args.radius_in, args.dpi)
    if verbose:
        print(f"Analyzing darkness of {args.pattern} ({pattern.width}x{pattern.height})...")
        print(f"  Radius: {radius:.1f}px, thresholds: {args.lower} - {args.upper}")
    future = studio.analyze(pattern, radius, args.upper, args.lower,
                            progress=progress_printer('analyze', verbose))
    result = wait(future, studio.analysis)

    print()
    print(format_stats(result.stats))
    if args.overlay:
        overlay = render_overlay(result, pattern.width, pattern.height)
        args.overlay.parent.mkdir(parents=True, exist_ok=True)
        save_buffer(composite_overlay(pattern, overlay), args.overlay)
        if verbose:
            print(f"  Overlay: {args.overlay}")
    if args.plot:
        args.plot.parent.mkdir(parents=True, exist_ok=True)
        plot_darkness_map(result, args.plot, title=args.pattern.stem)
        if verbose:
            print(f"  Plot: {args.plot}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='SDF halftone pattern generator and analyzer')
    sub = parser.add_subparsers(dest='command', required=True)

    gen = sub.add_parser('generate', help='Generate a pattern field')
    gen.add_argument('kind', type=str, help='hilbert, peano, gosper, zorder, random, noise or benday')
    gen.add_argument('--output', '-o', type=Path, required=True, help='Output PNG')
    gen.add_argument('--width', type=int, default=1024, help='Width in pixels (default: 1024)')
    gen.add_argument('--height', type=int, default=1024, help='Height in pixels (default: 1024)')
    gen.add_argument('--invert', action='store_true', help='Invert the field')
    curve = gen.add_argument_group('curves')
    curve.add_argument('--iterations', type=int, default=None,
                       help='Curve depth (default: 5 hilbert/zorder, 4 peano/gosper)')
    curve.add_argument('--line-width', type=float, default=None,
                       help='Gradient width in cells (default: 2.0)')
    rand = gen.add_argument_group('random / noise')
    rand.add_argument('--distribution', choices=DISTRIBUTIONS, default=None,
                      help='Random distribution (default: uniform)')
    rand.add_argument('--seed', type=int, default=None, help='Seed for reproducible output')
    rand.add_argument('--scale', type=float, default=None, help='Noise frequency scale (default: 1.0)')
    rand.add_argument('--octaves', type=int, default=None, help='Noise octaves 1-8 (default: 4)')
    rand.add_argument('--persistence', type=float, default=None,
                      help='Noise amplitude falloff 0-1 (default: 0.5)')
    dots = gen.add_argument_group('benday')
    dots.add_argument('--spacing', type=float, default=None, help='Dot spacing in pixels (default: 20)')
    dots.add_argument('--shape', choices=sorted(SHAPE_FACTORS), default=None, help='Dot shape (default: circle)')
    dots.add_argument('--grid', choices=GRID_TYPES, default=None, help='Lattice (default: square)')
    dots.add_argument('--dot-size', type=float, default=None,
                      help='Optional 0-1 gradient steepness (default: linear ramp; '
                           '0.7 reproduces the usual dot-size setting)')

    app = sub.add_parser('apply', help='Halftone an image with a pattern')
    app.add_argument('image', type=Path, help='Source image')
    app.add_argument('pattern', type=Path, nargs='?', default=None,
                     help='Pattern PNG (required for threshold and blend)')
    app.add_argument('--output', '-o', type=Path, required=True, help='Output PNG')
    app.add_argument('--method', choices=METHODS, default='threshold', help='Halftone method')
    app.add_argument('--contrast', type=float, default=0.0, help='Contrast -100..100 (default: 0)')
    app.add_argument('--brightness', type=float, default=0.0, help='Brightness -100..100 (default: 0)')

    ana = sub.add_parser('analyze', help='Check local darkness of a pattern')
    ana.add_argument('pattern', type=Path, help='Pattern PNG')
    ana.add_argument('--radius-px', type=float, default=None, help='Window radius in pixels')
    ana.add_argument('--radius-in', type=float, default=DEFAULT_RADIUS_INCHES,
                     help='Window radius in inches (default: 0.125)')
    ana.add_argument('--dpi', type=float, default=DEFAULT_DPI, help='Print resolution (default: 300)')
    ana.add_argument('--upper', type=float, default=0.7, help='Too-dark threshold (default: 0.7)')
    ana.add_argument('--lower', type=float, default=0.3, help='Too-light threshold (default: 0.3)')
    ana.add_argument('--overlay', type=Path, default=None, help='Write pattern with red/green overlay')
    ana.add_argument('--plot', type=Path, default=None, help='Write darkness heat map figure')

    for p in (gen, app, ana):
        p.add_argument('--quiet', '-q', action='store_true', help='Quiet mode')
    return parser


COMMANDS = {
    'generate': cmd_generate,
    'apply': cmd_apply,
    'analyze': cmd_analyze,
}


def main(argv=None):
    args = build_parser().parse_args(argv)

    with PatternStudio() as studio:
        try:
            COMMANDS[args.command](args, studio)
        except OperationCancelled:
            print("Cancelled.")
            return
        except FileNotFoundError as e:
            print(f"Error: File not found: {e.filename}")
            sys.exit(1)
        except (HalftoneError, ValueError) as e:
            print(f"Error: {e}")
            sys.exit(1)

    if not args.quiet:
        print()
        print("Done!")


if __name__ == '__main__':
    main()
