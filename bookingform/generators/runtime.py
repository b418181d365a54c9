"""Client-side runtime embedded in every compiled booking form.

The JavaScript below mirrors ``bookingform.flow``: the same phases,
selection rules, calendar predicate, validation order and payload. Shared
constants are injected from the flow package at compile time so both
sides agree on them.
"""

from __future__ import annotations

from typing import Optional

from ..flow.state import PREFERENCE_COUNT, SLOT_MINUTES, Phase
from ..flow.summary import CURRENCY_PREFIX, DEFAULT_DURATION_MINUTES
from ..flow.transitions import REPEAT_BOOKING_MAX_AGE
from ..flow.validation import MESSAGES, PHONE_PATTERNS, PHONE_STRIP_PATTERN, STEP_FIELDS, VALIDATION_ORDER
from ..schemas.form_config import WEEKDAYS
from ..utils.html import json_for_script

CONFIG_SCRIPT_ID = "booking-config"
AVAILABILITY_SCRIPT_ID = "booking-availability"
RUNTIME_SCRIPT_ID = "booking-runtime"

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Stand-in until a real availability source is wired in. Replace the body of
# this block (or pass ``availability_script``) to consult an external oracle.
DEFAULT_AVAILABILITY_JS = """window.bookingAvailability = function (date, time) {
  return true;
};"""

RUNTIME_JS_TEMPLATE = r"""(function () {
  "use strict";

  var FLOW = __FLOW__;
  var LIFF_SDK_URL = __LIFF_SDK_URL__;
  var CONFIG_ID = __CONFIG_ID__;
  var STORAGE_KEY = "bookingform:last-selection:" + window.location.pathname;
  var PHASES = FLOW.phases;

  function readConfig() {
    var node = document.getElementById(CONFIG_ID);
    if (!node) return null;
    try {
      return JSON.parse(node.textContent);
    } catch (err) {
      console.error("[booking] invalid configuration", err);
      return null;
    }
  }

  var config = readConfig();
  if (!config) return;

  function pad(value) {
    return value < 10 ? "0" + value : String(value);
  }

  function isoDate(day) {
    return day.getFullYear() + "-" + pad(day.getMonth() + 1) + "-" + pad(day.getDate());
  }

  function parseIso(value) {
    var parts = value.split("-");
    return new Date(Number(parts[0]), Number(parts[1]) - 1, Number(parts[2]));
  }

  function addDays(day, count) {
    return new Date(day.getFullYear(), day.getMonth(), day.getDate() + count);
  }

  function mondayIndex(day) {
    return (day.getDay() + 6) % 7;
  }

  function weekStartFor(day) {
    return addDays(day, -mondayIndex(day));
  }

  function daysBetween(start, end) {
    return Math.round((end.getTime() - start.getTime()) / 86400000);
  }

  function clockToMinutes(value) {
    var parts = value.split(":");
    return Number(parts[0]) * 60 + Number(parts[1]);
  }

  function minutesToClock(value) {
    return pad(Math.floor(value / 60)) + ":" + pad(value % 60);
  }

  function formatPrice(amount) {
    return FLOW.currency_prefix + Number(amount || 0).toLocaleString("en-US");
  }

  function findById(items, id) {
    if (!id || !items) return null;
    for (var i = 0; i < items.length; i++) {
      if (items[i].id === id) return items[i];
    }
    return null;
  }

  function findMenu(menuId) {
    if (!menuId) return null;
    var categories = config.menu_structure.categories;
    for (var i = 0; i < categories.length; i++) {
      var menu = findById(categories[i].menus, menuId);
      if (menu) return menu;
    }
    return null;
  }

  function selectionFor(field) {
    return config[field + "_selection"];
  }

  var now = new Date();
  var today = new Date(now.getFullYear(), now.getMonth(), now.getDate());

  function emptyPreferences() {
    var items = [];
    for (var i = 0; i < FLOW.preference_count; i++) items.push({ date: null, time: null });
    return items;
  }

  var state = {
    phase: PHASES.IDLE,
    name: "",
    phone: "",
    gender: null,
    visit_count: null,
    coupon: null,
    menu_id: null,
    submenu_id: null,
    option_ids: [],
    date: null,
    time: null,
    preferences: emptyPreferences(),
    message: "",
    error: null,
    week_start: isoDate(weekStartFor(today))
  };

  var liffReady = false;

  // ---------------------------------------------------------------------
  // Derived values
  // ---------------------------------------------------------------------

  function isMultipleDates() {
    return config.calendar_settings.booking_mode === "multiple_dates";
  }

  function scheduleOf() {
    if (isMultipleDates()) return state.preferences[0];
    return { date: state.date, time: state.time };
  }

  function isLocked() {
    return state.phase === PHASES.SUBMITTING || state.phase === PHASES.SUBMITTED;
  }

  function derivePhase() {
    var menu = findMenu(state.menu_id);
    if (!menu) return PHASES.IDLE;
    if (menu.has_submenu && !findById(menu.sub_menu_items, state.submenu_id)) return PHASES.MENU_CHOSEN;
    var schedule = scheduleOf();
    if (schedule.date && schedule.time) return PHASES.READY_TO_SUBMIT;
    if (schedule.date) return PHASES.DATE_CHOSEN;
    return menu.has_submenu ? PHASES.SUBMENU_CHOSEN : PHASES.MENU_CHOSEN;
  }

  function calendarVisible() {
    var menu = findMenu(state.menu_id);
    if (!menu) return false;
    return !menu.has_submenu || !!findById(menu.sub_menu_items, state.submenu_id);
  }

  function hoursFor(day) {
    return config.calendar_settings.business_hours[FLOW.weekdays[mondayIndex(day)]];
  }

  function timeSlots() {
    var start = null;
    var end = null;
    FLOW.weekdays.forEach(function (name) {
      var hours = config.calendar_settings.business_hours[name];
      if (hours.closed) return;
      var open = clockToMinutes(hours.open);
      var close = clockToMinutes(hours.close);
      if (start === null || open < start) start = open;
      if (end === null || close > end) end = close;
    });
    var slots = [];
    if (start === null || end <= start) return slots;
    for (var minute = start; minute < end; minute += FLOW.slot_minutes) {
      slots.push(minutesToClock(minute));
    }
    return slots;
  }

  // The availability predicate lives in its own script block.
  function isAvailable(dateValue, slot) {
    var predicate = window.bookingAvailability;
    if (typeof predicate !== "function") return true;
    try {
      return !!predicate(dateValue, slot);
    } catch (err) {
      console.warn("[booking] availability check failed", err);
      return false;
    }
  }

  function isCellSelectable(day, slot) {
    if (day < today) return false;
    if (daysBetween(today, day) > config.calendar_settings.advance_booking_days) return false;
    var hours = hoursFor(day);
    if (hours.closed) return false;
    var minute = clockToMinutes(slot);
    if (minute < clockToMinutes(hours.open) || minute >= clockToMinutes(hours.close)) return false;
    return isAvailable(isoDate(day), slot);
  }

  function selectedOptions(menu) {
    return (menu.options || []).filter(function (option) {
      return state.option_ids.indexOf(option.id) !== -1;
    });
  }

  function totals() {
    var menu = findMenu(state.menu_id);
    if (!menu) return { price: 0, duration: 0 };
    var base = findById(menu.sub_menu_items, state.submenu_id) || menu;
    var price = base.price;
    var duration = base.duration;
    selectedOptions(menu).forEach(function (option) {
      price += option.price;
      duration += option.duration;
    });
    return { price: price, duration: duration };
  }

  function answerLabel(field) {
    var selection = selectionFor(field);
    var answer = state[field];
    if (!selection.enabled || !answer) return null;
    var option = null;
    selection.options.forEach(function (item) {
      if (item.value === answer) option = item;
    });
    return option ? option.label : null;
  }

  function menuText() {
    var menu = findMenu(state.menu_id);
    if (!menu) return null;
    var showPrice = config.menu_structure.display_options.show_price;
    var submenu = findById(menu.sub_menu_items, state.submenu_id);
    var parts = [menu.name];
    if (submenu) {
      parts.push(showPrice ? submenu.name + " (" + formatPrice(submenu.price) + ")" : submenu.name);
    } else if (showPrice) {
      parts[0] = menu.name + " (" + formatPrice(menu.price) + ")";
    }
    selectedOptions(menu).forEach(function (option) {
      parts.push(showPrice ? "+ " + option.name + " (+" + formatPrice(option.price) + ")" : "+ " + option.name);
    });
    return parts.join(" / ");
  }

  function deriveSummary() {
    var items = [];
    if (state.name) items.push({ label: "Name", text: state.name, anchor: "name-field" });
    if (state.phone) items.push({ label: "Phone", text: state.phone, anchor: "phone-field" });
    [
      ["gender", "Gender", "gender-field"],
      ["visit_count", "Visit", "visit-count-field"],
      ["coupon", "Coupon", "coupon-field"]
    ].forEach(function (entry) {
      var label = answerLabel(entry[0]);
      if (label) items.push({ label: entry[1], text: label, anchor: entry[2] });
    });
    var text = menuText();
    if (text) {
      items.push({ label: "Menu", text: text, anchor: "menu-field" });
      if (config.menu_structure.display_options.show_price) {
        items.push({ label: "Total", text: formatPrice(totals().price), anchor: "menu-field" });
      }
    }
    var schedule = scheduleOf();
    if (schedule.date || schedule.time) {
      var when = [schedule.date, schedule.time].filter(Boolean).join(" ");
      items.push({ label: "Date", text: when, anchor: "datetime-field" });
    }
    if (state.message) items.push({ label: "Message", text: state.message, anchor: "message-field" });
    return items;
  }

  // ---------------------------------------------------------------------
  // Transitions
  // ---------------------------------------------------------------------

  function commit(changes) {
    if (isLocked()) return;
    Object.keys(changes).forEach(function (key) {
      state[key] = changes[key];
    });
    state.phase = derivePhase();
    render();
  }

  function clearedSchedule(changes) {
    changes.date = null;
    changes.time = null;
    changes.preferences = emptyPreferences();
    return changes;
  }

  function selectMenu(menuId) {
    if (isLocked()) return;
    var menu = findMenu(menuId);
    if (!menu) return;
    var changes;
    if (state.menu_id === menu.id) {
      changes = { menu_id: null, submenu_id: null, option_ids: [] };
    } else {
      var defaults = (menu.options || []).filter(function (option) {
        return option.is_default;
      }).map(function (option) {
        return option.id;
      });
      changes = { menu_id: menu.id, submenu_id: null, option_ids: defaults };
    }
    changes.error = null;
    commit(clearedSchedule(changes));
  }

  function selectSubmenu(submenuId) {
    var menu = findMenu(state.menu_id);
    if (!menu || !findById(menu.sub_menu_items, submenuId)) return;
    commit({ submenu_id: submenuId, error: null });
  }

  function toggleOption(optionId) {
    var menu = findMenu(state.menu_id);
    if (!menu || !findById(menu.options, optionId)) return;
    var selected = state.option_ids.slice();
    var index = selected.indexOf(optionId);
    if (index === -1) {
      selected.push(optionId);
    } else {
      selected.splice(index, 1);
    }
    var ordered = menu.options.filter(function (option) {
      return selected.indexOf(option.id) !== -1;
    }).map(function (option) {
      return option.id;
    });
    commit({ option_ids: ordered, error: null });
  }

  function setField(field, value) {
    var changes = { error: null };
    if (field === "name" || field === "phone" || field === "message") {
      changes[field] = value || "";
      commit(changes);
      return;
    }
    var selection = selectionFor(field);
    if (!selection || !selection.enabled) return;
    if (value) {
      var known = selection.options.some(function (option) {
        return option.value === value;
      });
      if (!known) return;
    }
    changes[field] = value || null;
    commit(changes);
  }

  function selectSlot(dateValue, slot) {
    if (!calendarVisible()) return;
    if (!isCellSelectable(parseIso(dateValue), slot)) return;
    commit({ date: dateValue, time: slot, error: null });
  }

  function setPreference(index, dateValue, slot) {
    if (!calendarVisible()) return;
    var preferences = state.preferences.slice();
    preferences[index] = { date: dateValue || null, time: slot || null };
    commit({ preferences: preferences, error: null });
  }

  function moveWeek(target) {
    var earliest = weekStartFor(today);
    var monday = weekStartFor(target);
    if (monday < earliest) monday = earliest;
    var changes = { week_start: isoDate(monday) };
    if (state.date) {
      var selected = parseIso(state.date);
      if (selected < monday || selected > addDays(monday, 6)) {
        changes.date = null;
        changes.time = null;
      }
    }
    commit(changes);
  }

  function navigateWeek(delta) {
    moveWeek(addDays(parseIso(state.week_start), 7 * delta));
  }

  function navigateMonth(delta) {
    var current = parseIso(state.week_start);
    moveWeek(new Date(current.getFullYear(), current.getMonth() + delta, 1));
  }

  // ---------------------------------------------------------------------
  // Validation and submission
  // ---------------------------------------------------------------------

  function isValidPhone(phone) {
    var digits = phone.replace(new RegExp(FLOW.phone_strip_pattern, "g"), "");
    return new RegExp(FLOW.phone_patterns[config.validation_rules.phone_format]).test(digits);
  }

  function selectionMissing(field) {
    var selection = selectionFor(field);
    return selection.enabled && selection.required && !state[field];
  }

  function isFailing(step) {
    var rules = config.validation_rules;
    if (step === "name") return !state.name.trim();
    if (step === "phone") return !isValidPhone(state.phone);
    if (step === "name_length") return Array.from(state.name.trim()).length > rules.name_max_length;
    if (step === "gender" || step === "visit_count" || step === "coupon") return selectionMissing(step);
    if (step === "menu") {
      var menu = findMenu(state.menu_id);
      if (!menu) return true;
      return menu.has_submenu && !findById(menu.sub_menu_items, state.submenu_id);
    }
    if (step === "schedule") {
      var schedule = scheduleOf();
      return !(schedule.date && schedule.time);
    }
    return false;
  }

  function validate() {
    for (var i = 0; i < FLOW.validation_order.length; i++) {
      var step = FLOW.validation_order[i];
      if (isFailing(step)) {
        return {
          step: step,
          field: FLOW.step_fields[step],
          message: FLOW.messages[step].replace("{max_length}", config.validation_rules.name_max_length)
        };
      }
    }
    return null;
  }

  function describe(item) {
    return item ? { id: item.id, name: item.name, price: item.price, duration: item.duration } : null;
  }

  function buildPayload(submittedAt) {
    var menu = findMenu(state.menu_id);
    var submenu = menu ? findById(menu.sub_menu_items, state.submenu_id) : null;
    var amounts = totals();
    var schedule = scheduleOf();
    return {
      form_name: config.basic_info.form_name,
      store_name: config.basic_info.store_name,
      name: state.name.trim(),
      phone: state.phone.trim(),
      gender: config.gender_selection.enabled ? state.gender : null,
      visit_count: config.visit_count_selection.enabled ? state.visit_count : null,
      coupon: config.coupon_selection.enabled ? state.coupon : null,
      menu: describe(menu),
      submenu: describe(submenu),
      options: menu ? selectedOptions(menu).map(describe) : [],
      date: schedule.date,
      time: schedule.time,
      preferences: isMultipleDates()
        ? state.preferences.filter(function (item) {
            return item.date && item.time;
          })
        : [],
      message: state.message,
      total_price: amounts.price,
      total_duration: amounts.duration || FLOW.default_duration,
      submitted_at: submittedAt
    };
  }

  function confirmationMessage() {
    var lines = ["[" + config.basic_info.form_name + "]"];
    deriveSummary().forEach(function (item) {
      lines.push(item.label + ": " + item.text);
    });
    return lines.join("\n");
  }

  function dispatch(name, detail) {
    try {
      window.dispatchEvent(new CustomEvent(name, { detail: detail }));
    } catch (err) {
      console.warn("[booking] could not dispatch " + name, err);
    }
  }

  // Fire-and-forget: failures never block the success view.
  function deliver(payload) {
    var endpoint = config.webhook_endpoint;
    if (!endpoint) return;
    try {
      fetch(endpoint, {
        method: "POST",
        headers: { "Content-Type": "text/plain;charset=utf-8" },
        body: JSON.stringify(payload)
      }).then(function (response) {
        if (!response.ok) throw new Error("HTTP " + response.status);
      }).catch(function (err) {
        console.error("[booking] delivery failed", err);
        dispatch("booking:delivery-failed", { error: String(err), payload: payload });
      });
    } catch (err) {
      console.error("[booking] delivery failed", err);
      dispatch("booking:delivery-failed", { error: String(err), payload: payload });
    }
  }

  function sendLiffMessage(text) {
    if (!liffReady || typeof liff === "undefined") return;
    try {
      if (!liff.isLoggedIn()) return;
      liff.sendMessages([{ type: "text", text: text }]).catch(function (err) {
        console.warn("[booking] LIFF message failed", err);
      });
    } catch (err) {
      console.warn("[booking] LIFF message failed", err);
    }
  }

  function submit() {
    if (isLocked()) return;
    var issue = validate();
    if (issue) {
      state.error = issue.message;
      render();
      scrollToField(issue.field);
      return;
    }
    var payload = buildPayload(new Date().toISOString());
    var message = confirmationMessage();
    state.error = null;
    state.phase = PHASES.SUBMITTING;
    render();
    if (config.ui_settings.show_repeat_booking) saveSelection();
    deliver(payload);
    sendLiffMessage(message);
    state.phase = PHASES.SUBMITTED;
    render();
    dispatch("booking:submitted", { payload: payload });
  }

  // ---------------------------------------------------------------------
  // Repeat booking
  // ---------------------------------------------------------------------

  function hasLocalStorage() {
    try {
      return typeof localStorage !== "undefined";
    } catch (err) {
      return false;
    }
  }

  function saveSelection() {
    if (!hasLocalStorage()) return;
    try {
      localStorage.setItem(STORAGE_KEY, JSON.stringify({
        menu_id: state.menu_id,
        submenu_id: state.submenu_id,
        option_ids: state.option_ids.slice(),
        gender: state.gender,
        visit_count: state.visit_count,
        coupon: state.coupon,
        saved_at: new Date().toISOString()
      }));
    } catch (err) {
      console.warn("[booking] could not store selection", err);
    }
  }

  function loadSelection() {
    if (!hasLocalStorage()) return null;
    try {
      var saved = JSON.parse(localStorage.getItem(STORAGE_KEY) || "null");
      if (!saved || !saved.saved_at) return null;
      if (Date.now() - new Date(saved.saved_at).getTime() > FLOW.repeat_booking_max_age_ms) return null;
      return saved;
    } catch (err) {
      return null;
    }
  }

  function restoreSelection(saved) {
    if (saved.menu_id && saved.menu_id !== state.menu_id) selectMenu(saved.menu_id);
    if (saved.submenu_id) selectSubmenu(saved.submenu_id);
    var menu = findMenu(state.menu_id);
    if (menu && Array.isArray(saved.option_ids)) {
      var ids = (menu.options || []).filter(function (option) {
        return saved.option_ids.indexOf(option.id) !== -1;
      }).map(function (option) {
        return option.id;
      });
      commit({ option_ids: ids });
    }
    ["gender", "visit_count", "coupon"].forEach(function (field) {
      if (saved[field]) setField(field, saved[field]);
    });
  }

  // ---------------------------------------------------------------------
  // Identity SDK
  // ---------------------------------------------------------------------

  function initLiff() {
    var liffId = config.basic_info.liff_id;
    if (!liffId) return;
    var script = document.createElement("script");
    script.src = LIFF_SDK_URL;
    script.onload = function () {
      try {
        liff.init({ liffId: liffId }).then(function () {
          liffReady = true;
          if (!liff.isLoggedIn()) return;
          return liff.getProfile().then(function (profile) {
            if (state.name || !profile || !profile.displayName) return;
            var input = document.getElementById("customer-name");
            if (input) input.value = profile.displayName;
            setField("name", profile.displayName);
          });
        }).catch(function (err) {
          console.warn("[booking] LIFF init failed", err);
        });
      } catch (err) {
        console.warn("[booking] LIFF init failed", err);
      }
    };
    script.onerror = function () {
      console.warn("[booking] LIFF SDK could not be loaded");
    };
    document.head.appendChild(script);
  }

  // ---------------------------------------------------------------------
  // Rendering
  // ---------------------------------------------------------------------

  function byId(id) {
    return document.getElementById(id);
  }

  function each(selector, callback) {
    Array.prototype.forEach.call(document.querySelectorAll(selector), callback);
  }

  function setActive(node, active) {
    if (active) {
      node.classList.add("active");
    } else {
      node.classList.remove("active");
    }
  }

  function scrollToField(fieldId) {
    var node = byId(fieldId);
    if (node && node.scrollIntoView) node.scrollIntoView({ behavior: "smooth", block: "center" });
  }

  function renderChoices() {
    each(".choice-button", function (button) {
      setActive(button, state[button.getAttribute("data-choice")] === button.getAttribute("data-value"));
    });
  }

  function renderMenus() {
    each(".menu-button", function (button) {
      setActive(button, button.getAttribute("data-menu-id") === state.menu_id);
    });
    each(".submenu-list", function (list) {
      list.hidden = list.getAttribute("data-submenu-for") !== state.menu_id;
    });
    each(".submenu-button", function (button) {
      setActive(button, button.getAttribute("data-submenu-id") === state.submenu_id
        && button.getAttribute("data-menu-id") === state.menu_id);
    });
    each(".option-list", function (list) {
      list.hidden = list.getAttribute("data-options-for") !== state.menu_id;
    });
    each(".option-button", function (button) {
      setActive(button, button.getAttribute("data-menu-id") === state.menu_id
        && state.option_ids.indexOf(button.getAttribute("data-option-id")) !== -1);
    });
    var treatment = byId("treatment-info");
    if (treatment) {
      var menu = findMenu(state.menu_id);
      treatment.hidden = !menu;
      treatment.textContent = menu ? "Treatment time: " + totals().duration + " min" : "";
    }
  }

  function renderCalendar() {
    var grid = byId("calendar-grid");
    if (!grid) return;
    var start = parseIso(state.week_start);
    var days = [];
    for (var i = 0; i < 7; i++) days.push(addDays(start, i));
    var range = byId("calendar-range");
    if (range) range.textContent = isoDate(days[0]) + " - " + isoDate(days[6]);
    var previous = byId("prev-week");
    if (previous) previous.disabled = start <= weekStartFor(today);
    var previousMonth = byId("prev-month");
    if (previousMonth) previousMonth.disabled = start <= weekStartFor(today);

    var table = document.createElement("table");
    table.className = "calendar-table";
    var head = document.createElement("tr");
    head.appendChild(document.createElement("th"));
    days.forEach(function (day) {
      var cell = document.createElement("th");
      cell.textContent = (day.getMonth() + 1) + "/" + day.getDate() + " " + FLOW.weekday_labels[mondayIndex(day)];
      head.appendChild(cell);
    });
    table.appendChild(head);

    timeSlots().forEach(function (slot) {
      var row = document.createElement("tr");
      var label = document.createElement("th");
      label.textContent = slot;
      row.appendChild(label);
      days.forEach(function (day) {
        var dateValue = isoDate(day);
        var selectable = isCellSelectable(day, slot);
        var cell = document.createElement("td");
        var button = document.createElement("button");
        button.type = "button";
        button.className = "calendar-cell " + (selectable ? "available" : "unavailable");
        if (state.date === dateValue && state.time === slot) button.className += " selected";
        button.textContent = selectable ? "○" : "×";
        button.disabled = !selectable;
        button.setAttribute("data-date", dateValue);
        button.setAttribute("data-time", slot);
        button.addEventListener("click", function () {
          selectSlot(dateValue, slot);
        });
        cell.appendChild(button);
        row.appendChild(cell);
      });
      table.appendChild(row);
    });

    grid.innerHTML = "";
    grid.appendChild(table);
    var selectedLabel = byId("selected-datetime");
    if (selectedLabel) {
      selectedLabel.textContent = state.date && state.time ? state.date + " " + state.time : "";
    }
  }

  function preferenceDates() {
    var settings = config.calendar_settings.multiple_dates_settings;
    var dates = [];
    for (var offset = 1; offset <= settings.date_range_days; offset++) {
      var day = addDays(today, offset);
      if (settings.exclude_weekdays.indexOf(day.getDay()) === -1) dates.push(isoDate(day));
    }
    return dates;
  }

  function preferenceTimes() {
    var settings = config.calendar_settings.multiple_dates_settings;
    var times = [];
    var end = clockToMinutes(settings.end_time);
    for (var minute = clockToMinutes(settings.start_time); minute < end; minute += settings.time_interval) {
      times.push(minutesToClock(minute));
    }
    return times;
  }

  function fillSelect(select, values) {
    values.forEach(function (value) {
      var option = document.createElement("option");
      option.value = value;
      option.textContent = value;
      select.appendChild(option);
    });
  }

  function renderPreferences() {
    each(".preference-date", function (select) {
      var preference = state.preferences[Number(select.getAttribute("data-index"))];
      select.value = preference.date || "";
    });
    each(".preference-time", function (select) {
      var preference = state.preferences[Number(select.getAttribute("data-index"))];
      select.value = preference.time || "";
    });
  }

  function renderSummary() {
    var container = byId("summary-content");
    if (!container) return;
    container.innerHTML = "";
    deriveSummary().forEach(function (item) {
      var row = document.createElement("div");
      row.className = "summary-item";
      var text = document.createElement("span");
      var label = document.createElement("strong");
      label.textContent = item.label + ": ";
      text.appendChild(label);
      text.appendChild(document.createTextNode(item.text));
      var edit = document.createElement("button");
      edit.type = "button";
      edit.className = "summary-edit-button";
      edit.textContent = "Edit";
      edit.addEventListener("click", function () {
        scrollToField(item.anchor);
      });
      row.appendChild(text);
      row.appendChild(edit);
      container.appendChild(row);
    });
  }

  function render() {
    document.body.setAttribute("data-phase", state.phase);
    renderChoices();
    renderMenus();
    var datetime = byId("datetime-field");
    if (datetime) {
      var visible = calendarVisible();
      datetime.hidden = !visible;
      if (visible) {
        if (isMultipleDates()) {
          renderPreferences();
        } else {
          renderCalendar();
        }
      }
    }
    renderSummary();
    var error = byId("form-error");
    if (error) {
      error.hidden = !state.error;
      error.textContent = state.error || "";
    }
    var submitButton = byId("submit-button");
    if (submitButton) submitButton.disabled = isLocked();
    if (state.phase === PHASES.SUBMITTED) {
      var content = byId("form-content");
      if (content) content.hidden = true;
      var success = byId("success-view");
      if (success) success.hidden = false;
    }
  }

  // ---------------------------------------------------------------------
  // Wiring
  // ---------------------------------------------------------------------

  function bindInput(id, field) {
    var input = byId(id);
    if (!input) return;
    input.addEventListener("input", function (event) {
      setField(field, event.target.value);
    });
  }

  function bindPreferences() {
    var dates = preferenceDates();
    var times = preferenceTimes();
    each(".preference-date", function (select) {
      fillSelect(select, dates);
    });
    each(".preference-time", function (select) {
      fillSelect(select, times);
    });
    each(".preference-row", function (row) {
      var index = Number(row.getAttribute("data-index"));
      var dateSelect = row.querySelector(".preference-date");
      var timeSelect = row.querySelector(".preference-time");
      var onChange = function () {
        setPreference(index, dateSelect.value, timeSelect.value);
      };
      dateSelect.addEventListener("change", onChange);
      timeSelect.addEventListener("change", onChange);
    });
  }

  function bind() {
    bindInput("customer-name", "name");
    bindInput("customer-phone", "phone");
    bindInput("customer-message", "message");
    each(".choice-button", function (button) {
      button.addEventListener("click", function () {
        setField(button.getAttribute("data-choice"), button.getAttribute("data-value"));
      });
    });
    each(".menu-button", function (button) {
      button.addEventListener("click", function () {
        selectMenu(button.getAttribute("data-menu-id"));
      });
    });
    each(".submenu-button", function (button) {
      button.addEventListener("click", function () {
        selectSubmenu(button.getAttribute("data-submenu-id"));
      });
    });
    each(".option-button", function (button) {
      button.addEventListener("click", function () {
        toggleOption(button.getAttribute("data-option-id"));
      });
    });
    [["prev-week", navigateWeek, -1], ["next-week", navigateWeek, 1],
     ["prev-month", navigateMonth, -1], ["next-month", navigateMonth, 1]].forEach(function (entry) {
      var button = byId(entry[0]);
      if (button) button.addEventListener("click", function () {
        entry[1](entry[2]);
      });
    });
    if (isMultipleDates()) bindPreferences();
    each(".side-nav-link", function (link) {
      link.addEventListener("click", function (event) {
        event.preventDefault();
        scrollToField(link.getAttribute("data-target"));
      });
    });
    var submitButton = byId("submit-button");
    if (submitButton) submitButton.addEventListener("click", submit);

    if (config.ui_settings.show_repeat_booking) {
      var saved = loadSelection();
      var shortcut = byId("repeat-booking");
      var shortcutButton = byId("repeat-booking-button");
      if (saved && shortcut && shortcutButton) {
        shortcut.hidden = false;
        shortcutButton.addEventListener("click", function () {
          restoreSelection(saved);
          shortcut.hidden = true;
        });
      }
    }
  }

  bind();
  render();
  initLiff();
})();"""


def flow_constants() -> dict:
    """Constants shared between the reference flow and the embedded runtime."""
    return {
        "phases": {phase.name: phase.value for phase in Phase},
        "weekdays": list(WEEKDAYS),
        "weekday_labels": list(WEEKDAY_LABELS),
        "slot_minutes": SLOT_MINUTES,
        "preference_count": PREFERENCE_COUNT,
        "validation_order": list(VALIDATION_ORDER),
        "messages": dict(MESSAGES),
        "step_fields": dict(STEP_FIELDS),
        "phone_patterns": dict(PHONE_PATTERNS),
        "phone_strip_pattern": PHONE_STRIP_PATTERN,
        "currency_prefix": CURRENCY_PREFIX,
        "default_duration": DEFAULT_DURATION_MINUTES,
        "repeat_booking_max_age_ms": int(REPEAT_BOOKING_MAX_AGE.total_seconds() * 1000),
    }


def build_runtime_script(liff_sdk_url: str) -> str:
    return (
        RUNTIME_JS_TEMPLATE.replace("__FLOW__", json_for_script(flow_constants()))
        .replace("__LIFF_SDK_URL__", json_for_script(liff_sdk_url))
        .replace("__CONFIG_ID__", json_for_script(CONFIG_SCRIPT_ID))
    )


def build_availability_script(script: Optional[str] = None) -> str:
    """Return the availability predicate block, the stand-in when ``script`` is empty."""
    if script is None or not script.strip():
        return DEFAULT_AVAILABILITY_JS
    return script.strip().replace("</", "<\\/")


__all__ = [
    "CONFIG_SCRIPT_ID",
    "AVAILABILITY_SCRIPT_ID",
    "RUNTIME_SCRIPT_ID",
    "DEFAULT_AVAILABILITY_JS",
    "RUNTIME_JS_TEMPLATE",
    "flow_constants",
    "build_runtime_script",
    "build_availability_script",
]
