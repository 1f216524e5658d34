"""Fixed Csound program used to detect claps.

The instrument high-passes the input at 1.5 kHz to drop most voice energy,
normalises it by a slow RMS follower, and reports an attack whenever the
normalised RMS jumps by more than ``iRmsDiffThreshold`` (at most one attack
every 90 ms).  Each attack is printed as ``Clap! t=<time> p=<rms diff>``.
"""

ORCHESTRA = r"""
sr = 44100
ksmps = 128
nchnls = 1
0dbfs  = 1

instr ClapListener

  kLastRms init 0
  kLastAttack init 0
  iRmsDiffThreshold init .1

  aIn in

  ;Clap energy is fairly wideband, but filtering sub 1.5kHz removes
  ;a lot of voice energy and avoids false positives
  aSig butterhp aIn, 1500

  ;Normalize the volume of input
  kRmsOrig rms aSig
  kSmoothingFreq linseg 5, 1, 0.01 ;avoids false positives at start of detection
  kSmoothRms tonek kRmsOrig, kSmoothingFreq
  kSmoothRms max kSmoothRms, 0.001 ;prevent divide by 0
  aNorm = 0.1 * aSig / a(kSmoothRms)

  kRms rms aNorm
  kRmsDiff = kRms - kLastRms

  kTime times
  if (kRmsDiff > iRmsDiffThreshold && kTime - kLastAttack > 0.09) then
    kLastAttack times
    printf "Clap! t=%f p=%f\n", kTime, kLastAttack, kRmsDiff
  endif

  kLastRms = kRms

endin
"""

# The score must have a fixed duration; the session driver rewinds it
SCORE = """
i "ClapListener" 0 65535
e
"""


def engine_options(
    engine_input: str,
    hardware_buffer: int = 2048,
    software_buffer: int = 512,
) -> list[str]:
    """Build the Csound command-line options for listening without output."""
    return [
        engine_input,
        "--nosound",
        f"-B{hardware_buffer}",
        f"-b{software_buffer}",
    ]
