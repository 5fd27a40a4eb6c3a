import os
from pathlib import Path


def _load_dotenv_if_needed() -> None:
	# Tests stay offline: never pick up provider keys from a local .env
	if os.getenv("PYTEST_CURRENT_TEST"):
		return
	env_path = Path(os.getenv("LETEX_ENV_FILE", ".env"))
	if not env_path.is_file():
		return
	try:
		lines = env_path.read_text(encoding="utf-8").splitlines()
	except OSError:
		return
	for line in lines:
		s = line.strip()
		if s.startswith("export "):
			s = s[len("export "):].lstrip()
		if not s or s.startswith("#") or "=" not in s:
			continue
		key, val = s.split("=", 1)
		key = key.strip()
		val = val.strip()
		if len(val) >= 2 and val[0] == val[-1] and val[0] in {"\"", "'"}:
			val = val[1:-1]
		# Real environment wins over the file
		if key and key not in os.environ:
			os.environ[key] = val


_load_dotenv_if_needed()
