"""
Daraja Mock Server — simulates Safaricom's M-Pesa STK push API.
Run: python daraja_server.py
Listens on port 8004. Point MPESA_BASE_URL at http://localhost:8004.

Every push is accepted; a few seconds later the result is posted to the
request's CallBackURL. Phone numbers ending in 1 are declined with
"Insufficient funds". Numbers ending in 2 settle successfully but their
callback is never sent, so only the status query (and the refresh task
behind it) can pick up the result.
"""

import json, threading, time, uuid, urllib.request
from datetime import datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

CALLBACK_DELAY_SECONDS = 3
RESULTS = {}   # CheckoutRequestID → (ResultCode, ResultDesc)


def _send_callback(url, checkout_id, merchant_id, amount, phone, deliver=True):
    time.sleep(CALLBACK_DELAY_SECONDS)
    if phone.endswith("1"):
        code, desc = 1, "Insufficient funds"
    else:
        code, desc = 0, "The service request is processed successfully."
    RESULTS[checkout_id] = (code, desc)
    if not deliver:
        return

    callback = {
        "MerchantRequestID": merchant_id,
        "CheckoutRequestID": checkout_id,
        "ResultCode":        code,
        "ResultDesc":        desc,
    }
    if code == 0:
        callback["CallbackMetadata"] = {"Item": [
            {"Name": "Amount",             "Value": amount},
            {"Name": "MpesaReceiptNumber", "Value": uuid.uuid4().hex[:10].upper()},
            {"Name": "TransactionDate",    "Value": int(datetime.now().strftime("%Y%m%d%H%M%S"))},
            {"Name": "PhoneNumber",        "Value": int(phone)},
        ]}
    req = urllib.request.Request(
        url,
        data=json.dumps({"Body": {"stkCallback": callback}}).encode(),
        headers={"Content-Type": "application/json"},
    )
    try:
        urllib.request.urlopen(req, timeout=5)
    except OSError as exc:
        print(f"Callback to {url} failed: {exc}")


class DarajaHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path.startswith("/oauth/v1/generate"):
            if "Authorization" not in self.headers:
                self._respond(400, {"errorMessage": "Invalid Authentication passed"})
                return
            self._respond(200, {"access_token": uuid.uuid4().hex, "expires_in": "3599"})
        else:
            self._respond(404, {"errorMessage": "Not found"})

    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body   = json.loads(self.rfile.read(length) or b"{}")

        if self.path == "/mpesa/stkpush/v1/processrequest":
            phone = str(body.get("PhoneNumber", ""))
            if not (phone.startswith("254") and len(phone) == 12):
                self._respond(400, {
                    "requestId":    uuid.uuid4().hex,
                    "errorCode":    "400.002.02",
                    "errorMessage": "Bad Request - Invalid PhoneNumber",
                })
                return

            checkout_id = f"ws_CO_{datetime.now():%d%m%Y%H%M%S}{uuid.uuid4().hex[:6]}"
            merchant_id = f"{uuid.uuid4().int % 100000}-{uuid.uuid4().int % 100000000}-1"
            threading.Thread(
                target=_send_callback,
                args=(body.get("CallBackURL"), checkout_id, merchant_id, body.get("Amount"), phone,
                      not phone.endswith("2")),
                daemon=True,
            ).start()
            self._respond(200, {
                "MerchantRequestID":   merchant_id,
                "CheckoutRequestID":   checkout_id,
                "ResponseCode":        "0",
                "ResponseDescription": "Success. Request accepted for processing",
                "CustomerMessage":     "Success. Request accepted for processing",
            })

        elif self.path == "/mpesa/stkpushquery/v1/query":
            checkout_id = body.get("CheckoutRequestID", "")
            if checkout_id not in RESULTS:
                self._respond(500, {
                    "requestId":    uuid.uuid4().hex,
                    "errorCode":    "500.001.1001",
                    "errorMessage": "The transaction is being processed",
                })
                return
            code, desc = RESULTS[checkout_id]
            self._respond(200, {
                "ResponseCode":        "0",
                "ResponseDescription": "The service request has been accepted successsfully",
                "CheckoutRequestID":   checkout_id,
                "ResultCode":          str(code),
                "ResultDesc":          desc,
            })
        else:
            self._respond(404, {"errorMessage": "Not found"})

    def _respond(self, code, data):
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(json.dumps(data).encode())

    def log_message(self, *_):
        pass


if __name__ == "__main__":
    server = ThreadingHTTPServer(("0.0.0.0", 8004), DarajaHandler)
    print("Daraja Mock running on :8004")
    server.serve_forever()
