import json
import os
import subprocess
import sys

# Sums 5 + 4 + 3 + 2 + 1 into x2, then runs into the zero word after the loop.
_SUM_CONFIG = {
    "memory_size": "0x1000",
    "debug_print": True,
    "illegal_opcode": "trap",
    "program": [
        "0x00500093",  # addi x1, x0, 5
        "0x00000113",  # addi x2, x0, 0
        "0x00110133",  # add  x2, x2, x1
        "0xfff08093",  # addi x1, x1, -1
        "0xfe009ce3",  # bne  x1, x0, -8
    ],
}


def _ensure_config_file(path):
    if os.path.exists(path):
        return False
    with open(path, "w") as f:
        json.dump(_SUM_CONFIG, f, indent=2)
    return True


def run_step_demo(config_path, steps):
    print(f"\n{'='*60}")
    print(f"DEMO: stepping {config_path} {steps} times")
    print(f"{'='*60}")

    sim_cmd = [sys.executable, "../rv32sim.py", f"--config={config_path}"]
    print(f"TERMINAL: {' '.join(sim_cmd)}")

    # One newline per step; EOF afterwards ends the run.
    result = subprocess.run(
        sim_cmd,
        input="\n" * steps,
        capture_output=True,
        text=True,
        timeout=10,
    )
    for line in result.stdout.splitlines():
        if line.startswith(("[SIM]", "[CFG]", "x0:", "pc:", "x 2")):
            print(line)
    print(f"\nSTATUS: exit code {result.returncode}")


if __name__ == "__main__":
    os.chdir(os.path.dirname(os.path.abspath(__file__)))
    config_path = "sum_demo.json"
    created = _ensure_config_file(config_path)
    try:
        # 2 setup instructions + 5 loop iterations of 3 instructions
        run_step_demo(config_path, 17)
        # One more step fetches the zero word and stops on the illegal instruction
        run_step_demo(config_path, 18)
    finally:
        if created and os.path.exists(config_path):
            os.remove(config_path)
