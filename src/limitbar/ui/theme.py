APP_CSS = """
Screen {
  background: #0c0f1a;
  color: #e8ecff;
}

#summary {
  height: 3;
  padding: 1 2;
  background: #141830;
}

AccountCard {
  margin: 1 2;
  padding: 0;
  background: #111528;
  height: auto;
}

Footer {
  background: #0e1225;
  color: #7184d6;
}

Header {
  background: #141830;
  color: #e8ecff;
}
"""

STATUS_COLORS = {
    "ok": "green",
    "unknown": "bright_black",
    "warning": "yellow",
    "exhausted": "red",
    "error": "red",
}

STATUS_BORDERS = {
    "ok": "#2be38f",
    "unknown": "#7184d6",
    "warning": "#f2c94c",
    "exhausted": "#ff5e6c",
    "error": "#ff5e6c",
}
