# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import uvicorn

if __name__ == '__main__':
    # HTTP
    uvicorn.run("age_verifier.verifier:app", host="0.0.0.0", port=8001, reload=True)
    # HTTPS
    # uvicorn.run("age_verifier.verifier:app", host="0.0.0.0", port=8001, reload=True, ssl_keyfile="cert/private.pem", ssl_certfile="cert/public.pem")
