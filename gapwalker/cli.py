"""
Command line entry point: `gapwalker close|walk|correct|scan-gaps`.
"""
import argparse
import logging
from pathlib import Path

from .errors import GapWalkerError
from .pipeline import GapWalker
from .settings import HETEROZYGOUS, HOMOZYGOUS, WalkerSettings


def _add_run_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("reads1", type=Path, help="reads (FASTA/FASTQ, gzip ok)")
    p.add_argument("reads2", type=Path, nargs="?", default=None, help="mate reads")
    p.add_argument("--sample", default=None, help="sample id used in output names")
    p.add_argument("--out-dir", type=Path, default=None, help="output directory")
    p.add_argument("--heterozygous", action="store_true", help="phase reads into two haplotypes")
    p.add_argument("--threads", type=int, default=None)
    p.add_argument("--preset", default=None, help="mappy preset (default sr)")
    p.add_argument("--mafft", default=None, help="mafft executable")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="gapwalker: close a scaffold gap by iterative read extension")
    parser.add_argument("-v", "--verbose", action="store_true", help="log alignment and splice details")
    sub = parser.add_subparsers(dest="cmd", required=True)

    for name, help_text in (("close", "walk the gap, then correct"), ("walk", "only walk the gap")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("reference", type=Path, help="two-line FASTA containing one run of ten N")
        _add_run_options(p)
        p.add_argument("--iterations", type=int, default=None, help="iteration budget (default 100)")
        p.add_argument("--coverage", type=int, default=None, help="predicted coverage (default 1000)")
        p.add_argument("--window", type=int, default=None, help="proximity window in bp (default 50)")
        p.add_argument("--fresh", action="store_true", help="ignore iteration snapshots from earlier runs")

    p_correct = sub.add_parser("correct", help="correct an already walked sequence")
    p_correct.add_argument("walked", type=Path, help="FASTA produced by `walk`")
    _add_run_options(p_correct)

    p_scan = sub.add_parser("scan-gaps", help="list N stretches")
    p_scan.add_argument("fasta", type=Path)
    p_scan.add_argument("--min-gap", type=int, default=10)
    return parser


def _settings(args) -> WalkerSettings:
    return WalkerSettings().with_overrides(
        ploidy_mode=HETEROZYGOUS if getattr(args, "heterozygous", False) else HOMOZYGOUS,
        threads=getattr(args, "threads", None),
        preset=getattr(args, "preset", None),
        mafft=getattr(args, "mafft", None),
        max_iterations=getattr(args, "iterations", None),
        predicted_coverage=getattr(args, "coverage", None),
        window=getattr(args, "window", None),
    )


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.ERROR,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        gw = GapWalker(_settings(args))
        if args.cmd == "close":
            gw.close_gap(
                args.reference, args.reads1, args.reads2,
                sample=args.sample, out_dir=args.out_dir, resume=not args.fresh,
            )
        elif args.cmd == "walk":
            result, path = gw.walk(
                args.reference, args.reads1, args.reads2,
                sample=args.sample, out_dir=args.out_dir, resume=not args.fresh,
            )
            print(f"{result.state.value}\t{result.iterations}\t{path}")
        elif args.cmd == "correct":
            gw.correct(args.walked, args.reads1, args.reads2, sample=args.sample, out_dir=args.out_dir)
        elif args.cmd == "scan-gaps":
            for name, start, end in gw.scan_gaps(args.fasta, min_gap=args.min_gap):
                print(f"{name}\t{start}\t{end}")
    except GapWalkerError as err:
        parser.exit(1, f"gapwalker: error: {err}\n")


if __name__ == "__main__":
    main()
