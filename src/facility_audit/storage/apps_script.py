"""Source of the spreadsheet web app that backs the remote record store.

Deploy it as a Google Apps Script web app and store the deployment URL as the
remote endpoint. Each row holds summary columns plus the full record JSON.
"""

from __future__ import annotations

import json
from string import Template

SHEET_NAME = "Audits"
JSON_COLUMN = "JSON_DATA"
SHEET_HEADERS = ("ID", "Date", "Facility", "Location", "Score", "Status", JSON_COLUMN)

_SCRIPT_TEMPLATE = Template(
    """
function doGet(e) {
  const sheet = getSheet();
  const range = sheet.getDataRange();

  if (range.getLastRow() <= 1) {
    return ContentService.createTextOutput("[]").setMimeType(ContentService.MimeType.JSON);
  }

  const data = range.getValues();
  const headers = data[0];
  const rows = data.slice(1);
  const jsonColIndex = headers.indexOf($json_column);

  let records = [];
  if (jsonColIndex > -1) {
    records = rows.map(row => {
      try {
        return JSON.parse(row[jsonColIndex]);
      } catch (err) {
        return null;
      }
    }).filter(r => r !== null);
  }

  return ContentService.createTextOutput(JSON.stringify(records))
    .setMimeType(ContentService.MimeType.JSON);
}

function doPost(e) {
  const sheet = getSheet();

  if (sheet.getLastRow() === 0) {
    sheet.appendRow($headers);
  }

  try {
    const body = JSON.parse(e.postData.contents);
    const record = body.record;
    const row = [
      record.id,
      new Date(record.timestamp).toISOString(),
      record.facilityName,
      record.location,
      record.overallScore,
      record.status,
      JSON.stringify(record)
    ];

    // Overwrite the row for an existing ID, append otherwise.
    const ids = sheet.getRange(1, 1, sheet.getLastRow(), 1).getValues();
    let target = -1;
    for (let i = 1; i < ids.length; i++) {
      if (String(ids[i][0]) === String(record.id)) {
        target = i + 1;
        break;
      }
    }
    if (target > 0) {
      sheet.getRange(target, 1, 1, row.length).setValues([row]);
    } else {
      sheet.appendRow(row);
    }

    return ContentService.createTextOutput(JSON.stringify({ result: 'success' }))
      .setMimeType(ContentService.MimeType.JSON);
  } catch (err) {
    return ContentService.createTextOutput(JSON.stringify({ result: 'error', error: err.toString() }))
      .setMimeType(ContentService.MimeType.JSON);
  }
}

function getSheet() {
  const ss = SpreadsheetApp.getActiveSpreadsheet();
  let sheet = ss.getSheetByName($sheet_name);
  if (!sheet) {
    sheet = ss.insertSheet($sheet_name);
  }
  return sheet;
}
"""
)

APPS_SCRIPT_SOURCE = _SCRIPT_TEMPLATE.substitute(
    sheet_name=json.dumps(SHEET_NAME),
    json_column=json.dumps(JSON_COLUMN),
    headers=json.dumps(list(SHEET_HEADERS)),
).strip()
