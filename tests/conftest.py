"""Shared fixtures: an in-process fake stage runner and fake stage scripts."""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from split_diarization.config import DEFAULT_SCRIPTS
from split_diarization.utils.markers import MarkerBoard


class FakeRunner:
    """Records stage calls and fakes their outputs in-process."""

    def __init__(
        self,
        *,
        fail: dict[str, int] | None = None,
        fail_when: str | None = None,
        delay: float = 0.0,
        markers: MarkerBoard | None = None,
        on_call: Callable[[str, list[object]], None] | None = None,
    ) -> None:
        self.fail = fail or {}
        self.fail_when = fail_when
        self.delay = delay
        self.markers = markers
        self.on_call = on_call
        self.calls: list[tuple[str, list[object]]] = []
        self.max_running_seen = 0
        self._lock = threading.Lock()

    def run(self, stage_id: str, args: list[object], *, cwd: Path, log_path: Path) -> int:
        with self._lock:
            self.calls.append((stage_id, list(args)))
            if self.markers is not None:
                self.max_running_seen = max(self.max_running_seen, self.markers.count_running())
        with log_path.open("a", encoding="utf-8") as f:
            f.write(f"{stage_id} {' '.join(str(a) for a in args)}\n")
        if self.delay:
            time.sleep(self.delay)
        rc = self.fail.get(stage_id, 0)
        if rc and self.fail_when is not None and self.fail_when not in str(args[0]):
            rc = 0
        if rc == 0 and self.on_call is not None:
            self.on_call(stage_id, list(args))
        return rc

    def stages(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_runner_cls() -> type[FakeRunner]:
    return FakeRunner


# Fake stage scripts. A "wav" file holds its duration in whole seconds on the
# first line; segmentation records are "<segment> <start> <end> <label>".

_SPLIT = r"""set -eu
wav=$1; root=$2; seg=$3
total=$(head -n1 "$wav"); total=${total%%.*}
bn=$(basename "$wav"); bn=${bn%.*}
mkdir -p "$root/blind_segmentation"
start=0
while [ "$start" -lt "$total" ]; do
  end=$((start + seg))
  if [ "$end" -gt "$total" ]; then end=$total; fi
  echo $((end - start)) > "$root/blind_segmentation/${bn}_${start}.00-${end}.00.wav"
  start=$end
done
echo "split $bn into $seg s segments"
"""

_SPEECH_SIL = r"""set -eu
wav=$1; out=$2
bn=$(basename "$wav"); bn=${bn%.*}
if [ -n "${FAIL_SEGMENT:-}" ] && [[ "$bn" == *"$FAIL_SEGMENT"* ]]; then
  echo "speech_sil: forced failure for $bn" >&2
  exit 3
fi
dur=$(head -n1 "$wav")
echo "$bn 0 $dur speech" > "$out"
echo "speech_sil ok $bn"
"""

_BIC = r"""set -eu
cp "$4" "$2"
echo "bic ok $2"
"""

_CLUSTER = r"""set -eu
wav=$1; seg=$2; bic=$3; dir=$4
bn=$(basename "$wav"); bn=${bn%.*}
echo "$seg $bic" > "$dir/cluster_input.txt"
awk '{print $1, $2, $3, "S0"}' "$seg" > "$dir/$bn.gmm.boost.merged.seg"
mkdir -p "$dir/re-cluster"
cp "$dir/$bn.gmm.boost.merged.seg" "$dir/re-cluster/$bn.re.gmm.boost.merged.seg"
echo "cluster ok $bn"
"""

_RESCORE = r"""set -eu
wav=$1; lst=$2; txt=$3; dir=$4
bn=$(basename "$wav"); bn=${bn%.*}
: > "$dir/$bn.gmm.boost.merged.seg"
while read -r f; do cat "$f" >> "$dir/$bn.gmm.boost.merged.seg"; done < "$lst"
: > "$dir/$bn.speech_sil.seg"
while read -r f; do cat "$f" >> "$dir/$bn.speech_sil.seg"; done < "$txt"
"""

_CV = r"""set -eu
wav=$1; merged=$2; dir=$4
bn=$(basename "$wav"); bn=${bn%.*}
cp "$merged" "$dir/$bn.cv.seg"
"""

_SOXI = r"""#!/usr/bin/env bash
d=$(head -n1 "$1"); d=${d%%.*}
printf 'Input File     : %s\n' "$1"
printf 'Channels       : 1\n'
printf 'Sample Rate    : 16000\n'
printf 'Precision      : 16-bit\n'
printf 'Duration       : %02d:%02d:%02d.00 = %d samples\n' $((d/3600)) $(((d%3600)/60)) $((d%60)) $((d*16000))
"""

_SOX = """#!/usr/bin/env bash
exit 0
"""

_BODIES = {
    "split": _SPLIT,
    "speech_sil": _SPEECH_SIL,
    "bic": _BIC,
    "cluster": _CLUSTER,
    "rescore": _RESCORE,
    "cv": _CV,
}

@pytest.fixture
def fake_stages(tmp_path: Path) -> Path:
    """Write fake stage scripts at their default relative locations."""
    base = tmp_path / "stages"
    for stage_id, rel in DEFAULT_SCRIPTS.items():
        path = base / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_BODIES[stage_id], encoding="utf-8")
    return base


@pytest.fixture
def fake_sox_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Put fake `sox`/`soxi` binaries first on PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name, body in (("soxi", _SOXI), ("sox", _SOX)):
        exe = bin_dir / name
        exe.write_text(body, encoding="utf-8")
        exe.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return bin_dir


@pytest.fixture
def recording(tmp_path: Path) -> Path:
    """A 25-minute fake recording."""
    wav = tmp_path / "meeting.wav"
    wav.write_text("1500\n", encoding="utf-8")
    return wav
