#!/usr/bin/env python3
"""
Flask development server runner for the Odyssey tournament platform
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from odyssey import create_app

if __name__ == '__main__':
    app = create_app()
    print("Starting Odyssey tournament platform...")
    print("Admin back-office will be available at: http://localhost:5000/admin/")
    print("Tournaments will be available at: http://localhost:5000/tournaments/")
    app.run(debug=True, host='0.0.0.0', port=5000)
