from __future__ import annotations

from ..schemas.form_config import UISettings

BUTTON_RADIUS = {"rounded": "9999px", "square": "6px"}

FORM_CSS_TEMPLATE = """
* { box-sizing: border-box; }
html, body {
  margin: 0;
  padding: 0;
  min-height: 100dvh;
  font-family: system-ui, -apple-system, 'Segoe UI', sans-serif;
  color: #1F2937;
  background: #F9FAFB;
  -webkit-font-smoothing: antialiased;
}
:root {
  --theme: __THEME__;
  --theme-soft: __THEME__1A;
  --button-radius: __RADIUS__;
}
.booking-form {
  max-width: min(430px, 100%);
  margin: 0 auto;
  padding: 16px;
  background: #FFFFFF;
  min-height: 100dvh;
}
.form-header { text-align: center; margin-bottom: 24px; }
.form-logo { max-height: 64px; max-width: 100%; }
.form-title { font-size: 1.4rem; margin: 8px 0 4px; color: var(--theme); }
.store-name { margin: 0; color: #6B7280; }
.field { margin-bottom: 20px; }
.field-label { display: block; font-weight: 600; margin: 0 0 8px; }
.required { color: #DC2626; }
.input {
  width: 100%;
  min-height: 44px;
  padding: 10px 12px;
  border: 1px solid #D1D5DB;
  border-radius: 8px;
  font-size: 1rem;
}
.input:focus { outline: 2px solid var(--theme); border-color: var(--theme); }
button { font: inherit; cursor: pointer; min-height: 44px; touch-action: manipulation; }
button:disabled { cursor: not-allowed; opacity: 0.5; }
.choice-group { display: flex; flex-wrap: wrap; gap: 8px; }
.choice-button, .menu-button, .submenu-button, .option-button, .repeat-booking-button {
  border: 1px solid var(--theme);
  background: #FFFFFF;
  color: var(--theme);
  border-radius: var(--button-radius);
  padding: 8px 16px;
}
.choice-button.active, .menu-button.active, .submenu-button.active, .option-button.active {
  background: var(--theme);
  color: #FFFFFF;
}
.menu-category { margin-bottom: 16px; }
.category-name { font-size: 1rem; margin: 0 0 8px; color: #374151; }
.menu-item { margin-bottom: 8px; }
.menu-button, .submenu-button, .option-button {
  width: 100%;
  display: flex;
  flex-direction: column;
  align-items: flex-start;
  text-align: left;
}
.menu-image { width: 100%; border-radius: 8px; margin-bottom: 8px; }
.menu-name { font-weight: 600; }
.menu-description { font-size: 0.85rem; opacity: 0.8; }
.menu-meta { display: flex; gap: 12px; font-size: 0.85rem; }
.submenu-list, .option-list {
  margin: 8px 0 0 12px;
  display: flex;
  flex-direction: column;
  gap: 6px;
}
.treatment-info { color: #6B7280; font-size: 0.9rem; }
.calendar-nav { display: flex; align-items: center; justify-content: space-between; gap: 4px; }
.calendar-nav-button { border: none; background: var(--theme-soft); color: var(--theme); border-radius: 8px; min-width: 44px; }
.calendar-range { font-weight: 600; }
.calendar-grid { overflow-x: auto; margin-top: 8px; }
.calendar-table { width: 100%; border-collapse: collapse; font-size: 0.8rem; }
.calendar-table th, .calendar-table td { border: 1px solid #E5E7EB; text-align: center; padding: 2px; }
.calendar-cell { width: 100%; min-height: 32px; border: none; background: transparent; }
.calendar-cell.available { color: var(--theme); }
.calendar-cell.unavailable { color: #D1D5DB; }
.calendar-cell.selected { background: var(--theme); color: #FFFFFF; }
.preference-row { margin-bottom: 12px; display: grid; grid-template-columns: 1fr 1fr; gap: 8px; }
.preference-label { grid-column: 1 / -1; margin: 0; font-size: 0.9rem; }
.summary { border-top: 1px solid #E5E7EB; padding-top: 16px; margin-bottom: 16px; }
.summary-title { font-size: 1.1rem; margin: 0 0 8px; }
.summary-item { display: flex; justify-content: space-between; align-items: center; gap: 8px; padding: 4px 0; }
.summary-edit-button { border: none; background: none; color: var(--theme); text-decoration: underline; }
.form-error { color: #DC2626; font-weight: 600; }
.submit-button {
  width: 100%;
  border: none;
  background: var(--theme);
  color: #FFFFFF;
  border-radius: var(--button-radius);
  padding: 14px;
  font-size: 1.05rem;
  font-weight: 700;
}
.success { text-align: center; padding: 48px 16px; }
.side-nav {
  position: fixed;
  right: 8px;
  top: 50%;
  transform: translateY(-50%);
  display: flex;
  flex-direction: column;
  gap: 4px;
  z-index: 10;
}
.side-nav-link {
  font-size: 0.75rem;
  padding: 6px 8px;
  border-radius: 6px;
  background: var(--theme-soft);
  color: var(--theme);
  text-decoration: none;
}
[hidden] { display: none !important; }
""".strip()


def build_stylesheet(ui: UISettings) -> str:
    """Stylesheet parameterized by theme colour and button shape."""
    radius = BUTTON_RADIUS.get(ui.button_style, BUTTON_RADIUS["rounded"])
    return FORM_CSS_TEMPLATE.replace("__THEME__", ui.theme_color).replace("__RADIUS__", radius)


__all__ = ["BUTTON_RADIUS", "FORM_CSS_TEMPLATE", "build_stylesheet"]
