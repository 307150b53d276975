"""Table schemas, well-known file names and acquisition constants for glycopaint."""

from __future__ import annotations

# --- Acquisition geometry -------------------------------------------------

PIXEL_WIDTH = 0.1603251  # micrometre per pixel
IMAGE_PIXELS = 512
IMAGE_WIDTH = round(PIXEL_WIDTH * IMAGE_PIXELS, 5)  # 82.08645 um
IMAGE_HEIGHT = IMAGE_WIDTH

TIME_INTERVAL = 0.05  # seconds per frame
NUMBER_OF_FRAMES = 2000
RECORDING_DURATION = TIME_INTERVAL * NUMBER_OF_FRAMES  # 100 s

# --- Well-known file and directory names ----------------------------------

EXPERIMENT_INFO_CSV = "Experiment Info.csv"
RECORDINGS_CSV = "All Recordings.csv"
TRACKS_CSV = "All Tracks.csv"
SQUARES_CSV = "All Squares.csv"
CONFIG_FILE = "Paint Configuration.json"
SWEEP_CONFIG_FILE = "Sweep Configuration.json"
SWEEP_DIR = "Sweep"
SWEEP_SUMMARY_CSV = "Sweep Summary.csv"
OUTPUT_DIR = "Output"
PARAMETERS_USED_FILE = "Parameters Used.txt"
TRACKS_SUFFIX = "-tracks.csv"
CASE_COLUMN = "Case"

# Files carried into every experiment and concatenated at project level.
PROJECT_LEVEL_FILES = (SQUARES_CSV, TRACKS_CSV, RECORDINGS_CSV, EXPERIMENT_INFO_CSV)

# --- Column schemas -------------------------------------------------------

EXPERIMENT_INFO_COLS: tuple[str, ...] = (
    "Recording Name",
    "Condition Number",
    "Replicate Number",
    "Probe Name",
    "Probe Type",
    "Cell Type",
    "Adjuvant",
    "Concentration",
    "Process Flag",
    "Threshold",
)

RECORDING_DERIVED_COLS: tuple[str, ...] = (
    "Number of Spots",
    "Number of Tracks",
    "Number of Tracks in Background",
    "Number of Squares in Background",
    "Average Tracks in Background",
    "Number of Spots in All Tracks",
    "Number of Frames",
    "Run Time",
    "Time Stamp",
    "Exclude",
    "Tau",
    "R Squared",
    "Density",
)

RECORDING_COLS: tuple[str, ...] = EXPERIMENT_INFO_COLS + RECORDING_DERIVED_COLS

TRACK_COLS: tuple[str, ...] = (
    "Unique Key",
    "Recording Name",
    "Track Id",
    "Track Label",
    "Number of Spots",
    "Number of Gaps",
    "Longest Gap",
    "Track Duration",
    "Track X Location",
    "Track Y Location",
    "Track Displacement",
    "Track Max Speed",
    "Track Median Speed",
    "Diffusion Coefficient",
    "Diffusion Coefficient Ext",
    "Total Distance",
    "Confinement Ratio",
    "Square Number",
    "Label Number",
)

SQUARE_COLS: tuple[str, ...] = (
    "Unique Key",
    "Recording Name",
    "Square Number",
    "Row Number",
    "Column Number",
    "Label Number",
    "Cell ID",
    "Selected",
    "Square Manually Excluded",
    "Image Excluded",
    "X0",
    "Y0",
    "X1",
    "Y1",
    "Number of Tracks",
    "Variability",
    "Density",
    "Density Ratio",
    "Density Ratio Ori",
    "Tau",
    "R Squared",
    "Median Diffusion Coefficient",
    "Median Diffusion Coefficient Ext",
    "Median Long Track Duration",
    "Median Short Track Duration",
    "Median Displacement",
    "Max Displacement",
    "Total Displacement",
    "Median Max Speed",
    "Max Max Speed",
    "Median Mean Speed",
    "Max Mean Speed",
    "Max Track Duration",
    "Total Track Duration",
    "Median Track Duration",
)

# Integer-valued columns are written without decimals.
INTEGER_COLS = frozenset({
    "Condition Number",
    "Replicate Number",
    "Number of Spots",
    "Number of Tracks",
    "Number of Tracks in Background",
    "Number of Squares in Background",
    "Number of Spots in All Tracks",
    "Number of Frames",
    "Run Time",
    "Track Id",
    "Number of Gaps",
    "Longest Gap",
    "Square Number",
    "Row Number",
    "Column Number",
    "Label Number",
    "Cell ID",
})
