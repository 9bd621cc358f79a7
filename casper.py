import asyncio
import sys

from casper.casper_runtime import Runtime
from casper.casper_printer import Printer

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def format_resolution(printer: Printer, resolution) -> str:
    lines = [f"{printer.pformat(resolution.definition)}  score {printer.pformat_score(resolution.score)}"]
    for name, value in resolution.bindings.items():
        lines.append(f"  {name} = {printer.pformat(value)}")
    return "\n".join(lines)

def load_module_file(runtime: Runtime, file_path: str) -> bool:
    result = runtime.load_file(file_path)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return False
    return True

def run_calls(module_path: str, calls) -> int:
    """Load a module, resolve each call in order and return an exit status."""
    runtime = Runtime()
    printer = Printer()
    if not load_module_file(runtime, module_path):
        return 1
    status = 0
    for call in calls:
        result = runtime.handle_call(call)
        if result.status == 'error':
            print(result.format_error(), file=sys.stderr)
            status = 1
            continue
        print(format_resolution(printer, result.value))
    return status

async def main():
    """Resolve calls given on the command line, otherwise start the interactive REPL."""
    args = [a for a in sys.argv[1:] if not a.startswith("-")]
    if len(args) > 1:
        raise SystemExit(run_calls(args[0], args[1:]))

    print("casperlang dispatch REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    # Setup
    runtime = Runtime()
    printer = Printer()
    if args and not load_module_file(runtime, args[0]):
        raise SystemExit(1)

    # REPL Loop
    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            # `:load file` adds a module until the first call freezes the runtime
            if line.startswith(":load "):
                load_module_file(runtime, line[len(":load "):].strip())
                continue

            result = runtime.handle_call(line)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            print(format_resolution(printer, result.value))

        except EOFError:
            print("\nExiting.")
            break
        except Exception as e:
            # Catch unexpected errors and print them nicely
            print(f"Error: {e}", file=sys.stderr)

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
