__all__ = [
    "change_speed",
    "downsample",
    "float_to_pcm16",
    "hann_window",
    "merge_frames",
    "pcm16_to_float",
    "resample_audio",
    "shift_pitch",
]

from repitch.dsp.decimate import downsample
from repitch.dsp.merge import merge_frames
from repitch.dsp.pitch import hann_window, shift_pitch
from repitch.dsp.quantize import float_to_pcm16, pcm16_to_float
from repitch.dsp.resample import change_speed, resample_audio
