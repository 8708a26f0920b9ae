"""
User-tunable hyperparameters for gapwalker.

Place this file at the project root and tweak values as needed; `gapwalker.settings`
imports it and falls back to built-in defaults for anything missing here.
All paths can be str or pathlib.Path.
"""

from pathlib import Path

# ==== Extension loop ====
# Maximum number of extension iterations before giving up.
MAX_ITERATIONS = 100

# Predicted coverage; extension of a side stops when its boundary depth exceeds 3x this value.
PREDICTED_COVERAGE = 1000

# How far (bp) from a gap boundary a read may start and still count as extension evidence.
PROXIMITY_WINDOW = 50

# ==== Alignment (mappy) ====
# minimap2 preset used for short paired-end reads.
MAPPY_PRESET = "sr"

# Worker threads handed to mappy.Aligner.
THREADS = 4

# Alignments covering less than this fraction of the read are dropped.
MIN_ALIGNED_FRACTION = 0.5

# ==== Multiple sequence alignment ====
# mafft executable used by the consensus builder.
MAFFT = "mafft"

# ==== Heterozygous path ====
# Mean coverage above which alignments are randomly thinned down to this value.
DOWNSAMPLE_TARGET = 100

# Seed for downsampling so reruns pick the same reads.
DOWNSAMPLE_SEED = 11

# A site is heterozygous when its two most common alleles each reach this fraction.
PHASE_MIN_ALLELE_FRACTION = 0.2

# Minimum depth for a site to be considered during phasing.
PHASE_MIN_DEPTH = 4

# ==== Correction ====
# Positions with depth <= this fraction of the mean depth are masked with N.
MASK_FRACTION = 0.2

# Minimum depth and allele fraction for the pileup variant caller.
VARIANT_MIN_DEPTH = 3
VARIANT_MIN_FRACTION = 0.5

# Default directory for snapshots and corrected FASTA files.
OUTPUT_DIR = str(Path(__file__).resolve().parent / "results")
